from fastapi import Depends

from src.core.locations.cache import PositionCache
from src.core.locations.publisher import UpdatePublisher
from src.core.locations.repository import LocationRepository
from src.core.locations.retrieval import RetrievalService
from src.services.dependencies import get_cache, get_publisher, get_repository


def get_retrieval_service(
    repository: LocationRepository = Depends(get_repository),
    cache: PositionCache = Depends(get_cache),
    publisher: UpdatePublisher = Depends(get_publisher),
) -> RetrievalService:
    return RetrievalService(repository, cache, publisher)
