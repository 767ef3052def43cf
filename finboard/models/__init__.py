from finboard.models.user_document import UserDocument

__all__ = ["UserDocument"]
