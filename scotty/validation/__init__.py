"""Form validation package."""

from scotty.validation.validator import FormValidator

__all__ = ["FormValidator"]
