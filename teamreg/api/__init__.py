from teamreg.api.server import create_app, handle_register

__all__ = ["create_app", "handle_register"]
