"""Service catalog service - Business logic for bookable services"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import CacheNamespace, cache
from ...models import Service
from ...shared.errors import NotFoundError, ValidationError
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Service layer for the service catalog"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def get_services(self) -> list[dict]:
        """Whole catalog, cached"""
        return cache.get_or_load(
            CacheNamespace.SERVICES,
            "all",
            lambda: [
                ServiceResponse.from_model(service).model_dump(mode="json")
                for service in self.repo.get_services(self.db)
            ],
        )

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    @staticmethod
    def _validate_numbers(price, duration) -> None:
        if duration is not None and duration <= 0:
            raise ValidationError("Service duration must be greater than 0")
        if price is not None and price < 0:
            raise ValidationError("Price must not be negative")

    def create_service(self, data: ServiceCreate) -> Service:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Service name must not be empty")
        self._validate_numbers(data.price, data.duration)

        if self.repo.get_service_by_name(self.db, name):
            raise ValidationError("Service name already exists")

        try:
            service = self.repo.create_service(
                self.db,
                name=name,
                description=data.description,
                price=data.price,
                duration=data.duration,
                is_active=data.isActive if data.isActive is not None else True,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError("Service name already exists") from e

        cache.invalidate(CacheNamespace.SERVICES)
        logger.info(f"Service {service.id} created: {service.name}")
        return service

    def update_service(self, service_id: int, data: ServiceUpdate) -> Service:
        service = self.get_service(service_id)
        supplied = data.model_dump(exclude_unset=True)

        updates = {}
        if "name" in supplied:
            name = (data.name or "").strip()
            if not name:
                raise ValidationError("Service name must not be empty")
            if name != service.name and self.repo.get_service_by_name(self.db, name):
                raise ValidationError("Service name already exists")
            updates["name"] = name
        self._validate_numbers(supplied.get("price"), supplied.get("duration"))

        if "description" in supplied:
            updates["description"] = data.description
        if "price" in supplied:
            updates["price"] = data.price
        if "duration" in supplied:
            updates["duration"] = data.duration
        if data.isActive is not None:
            updates["is_active"] = data.isActive

        try:
            service = self.repo.update_service(self.db, service, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError("Service name already exists") from e

        cache.invalidate(CacheNamespace.SERVICES)
        logger.info(f"Service {service.id} updated: {sorted(updates)}")
        return service

    def delete_service(self, service_id: int) -> dict:
        service = self.get_service(service_id)

        if self.repo.count_reservation_links(self.db, service.id) > 0:
            raise ValidationError("Service is used by reservations; disable it instead")

        self.repo.delete_service(self.db, service)
        cache.invalidate(CacheNamespace.SERVICES)
        logger.info(f"Service {service_id} deleted")
        return {"message": "Service deleted successfully"}
