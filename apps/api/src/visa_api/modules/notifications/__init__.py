from visa_api.modules.notifications.router import router

__all__ = ["router"]
