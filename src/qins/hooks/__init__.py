from .interception import QualityHooks

__all__ = ["QualityHooks"]
