from teamreg.middlewares.api_middleware import ApiClientMiddleware

__all__ = ["ApiClientMiddleware"]
