"""Services for external integrations."""

from app.services.storage import file_storage
from app.services.pdf_processor import pdf_processor
from app.services.ai_service import ai_service
from app.services.payment import payment_service

__all__ = ["file_storage", "pdf_processor", "ai_service", "payment_service"]
