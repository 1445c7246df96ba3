"""Fulfillment assignments: which repairer serves which product, category or device."""

from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import FulfillmentAssignment, Repairer
from app.repositories.policy_repository import ProductRepository, ProgramRepository
from app.repositories.repairer_repository import (
    DeviceRepository,
    FulfillmentAssignmentRepository,
    RepairerRepository,
)
from app.schemas.fulfillment import AssignmentCreate, EligibleRepairersQuery
from app.services.matching.repairer_matching import matches_program_countries, matches_specialization
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)


class AssignmentService:
    def __init__(self, db_session: AsyncSession):
        self.assignments = FulfillmentAssignmentRepository(db_session)
        self.repairers = RepairerRepository(db_session)
        self.programs = ProgramRepository(db_session)
        self.products = ProductRepository(db_session)
        self.devices = DeviceRepository(db_session)

    async def create_assignment(self, data: AssignmentCreate) -> FulfillmentAssignment:
        if not data.program_ids:
            raise ValidationError("Please select at least one program")

        fields: Dict[str, Any] = {
            "repairer_id": data.repairer_id,
            "program_ids": list(data.program_ids),
            "is_active": True,
        }
        if data.assignment_type == "product":
            if not data.product_id:
                raise ValidationError("Please select a product")
            fields["product_id"] = data.product_id
        elif data.assignment_type == "device_category":
            if not data.device_category:
                raise ValidationError("Please select a device category")
            fields["device_category"] = data.device_category
        else:
            if not data.manufacturer or not data.model_name:
                raise ValidationError("Please select manufacturer and model")
            fields["manufacturer"] = data.manufacturer
            fields["model_name"] = data.model_name

        assignment = await self.assignments.create(**fields)
        LOGGER.info(
            "Fulfillment assignment created",
            extra={"assignment_id": str(assignment.id), "type": data.assignment_type},
        )
        return assignment

    async def delete_assignment(self, assignment_id: UUID) -> None:
        if not await self.assignments.delete(assignment_id):
            raise NotFoundError("Assignment not found")

    async def list_assignments(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Assignments with display labels, optionally filtered by label or repairer name."""
        assignments = await self.assignments.list_with_repairers()
        program_names = {p.id: p.name for p in await self.programs.get_all(limit=1000)}
        product_names = {p.id: p.name for p in await self.products.get_all(limit=1000)}

        items = []
        for assignment in assignments:
            label = self.assignment_label(assignment, program_names, product_names)
            repairer_name = assignment.repairer.company_name if assignment.repairer else None
            if search:
                term = search.lower()
                if term not in label.lower() and term not in (repairer_name or "").lower():
                    continue
            item = row_to_dict(assignment)
            item["label"] = label
            item["repairer_name"] = repairer_name or "Unknown"
            items.append(item)
        return items

    @staticmethod
    def assignment_label(
        assignment: FulfillmentAssignment,
        program_names: Dict[UUID, str],
        product_names: Dict[UUID, str],
    ) -> str:
        if assignment.program_ids:
            names = ", ".join(program_names.get(pid, "Unknown") for pid in assignment.program_ids)
            return f"Programs: {names}"
        if assignment.manufacturer and assignment.model_name:
            return f"Device: {assignment.manufacturer} {assignment.model_name}"
        if assignment.product_id:
            return f"Product: {product_names.get(assignment.product_id, 'Unknown')}"
        if assignment.device_category:
            return f"Device Category: {assignment.device_category}"
        return "Unknown"

    async def eligible_repairers_for_assignment(self, query: EligibleRepairersQuery) -> List[Repairer]:
        """Repairers that can be picked for an assignment being configured.

        Program countries are enforced strictly here: when the selected
        programs restrict countries, a repairer without a country is excluded.
        """
        repairers = await self.repairers.list_active_with_slas()
        if not query.program_ids:
            return repairers

        programs = await self.programs.get_by_ids(list(query.program_ids))
        program_countries: List[str] = [
            code for program in programs for code in ((program.settings or {}).get("countries") or []) if code
        ]

        category: Optional[str] = None
        if query.assignment_type == "device_category":
            category = query.device_category
        elif query.assignment_type == "device" and query.manufacturer and query.model_name:
            device = await self.devices.find_by_manufacturer_model(query.manufacturer, query.model_name)
            category = device.device_category if device else None

        return [
            repairer
            for repairer in repairers
            if self._has_specialization(repairer.specializations, category)
            and matches_program_countries(program_countries, repairer.country, strict=True)
        ]

    @staticmethod
    def _has_specialization(specializations: Optional[Sequence[str]], category: Optional[str]) -> bool:
        # Repairers that list no specializations are not narrowed by category
        if not category or not specializations:
            return True
        return matches_specialization(specializations, category)
