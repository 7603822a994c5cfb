from .app import entrypoint

entrypoint()
