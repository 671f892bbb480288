from .inspection_service import QualityControlService

__all__ = ["QualityControlService"]
