"""
Shared plumbing for services that turn model-layer rule failures into API errors.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.services.error_handler import ErrorHandlerService
from marketplace.utils.exceptions import APIException
import logging

logger = logging.getLogger(__name__)


class BaseService:
    """Holds the session and the rollback-then-translate path for rejected writes."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def _reject(self, error: ValueError) -> APIException:
        """
        Discard pending changes and build the API error for a rejected write.

        Args:
            error: ValueError raised by a validator or lifecycle hook

        Returns:
            Exception for the caller to raise
        """
        await self.db.rollback()
        logger.info(f"{type(self).__name__} rejected change: {error}")
        return ErrorHandlerService.translate_model_error(error)
