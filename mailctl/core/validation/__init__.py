from .email import EmailValidator

__all__ = ["EmailValidator"]
