from guestbook.health.router import router


__all__ = ["router"]
