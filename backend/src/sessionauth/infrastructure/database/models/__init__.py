from .identity import AccountModel, SessionModel

__all__ = [
    "AccountModel",
    "SessionModel",
]
