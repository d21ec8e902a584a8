"""Per-table CRM services."""

from __future__ import annotations

from typing import ClassVar

from crm.models import Activity, Contact, Deal, SalesOrder, Task
from crm.records import RecordService, where_equals


class ContactService(RecordService[Contact]):
    table = "contact_c"
    model = Contact
    label = "contact"
    label_plural = "contacts"
    columns: ClassVar[dict[str, str]] = {
        "name": "name_c",
        "company": "company_c",
        "email": "email_c",
        "phone": "phone_c",
        "tags": "tags_c",
        "notes": "notes_c",
    }


class TaskService(RecordService[Task]):
    table = "task_c"
    model = Task
    label = "task"
    label_plural = "tasks"
    columns: ClassVar[dict[str, str]] = {
        "title": "title_c",
        "completed": "completed_c",
        "due_date": "due_date_c",
        "contact_id": "contact_id_c",
    }

    async def get_by_contact_id(self, contact_id: int | str) -> list[Task]:
        """Return the tasks owned by one contact."""
        params = self.query_params(where_equals("contact_id_c", int(contact_id)))
        return await self._fetch(params, f"Error fetching tasks for contact {contact_id}")


class ActivityService(RecordService[Activity]):
    """Activities come back newest first."""

    table = "activity_c"
    model = Activity
    label = "activity"
    label_plural = "activities"
    columns: ClassVar[dict[str, str]] = {
        "contact_id": "contact_id_c",
        "deal_id": "deal_id_c",
        "type": "type_c",
        "description": "description_c",
        "timestamp": "timestamp_c",
    }
    order_by = [{"fieldName": "timestamp_c", "sorttype": "DESC"}]

    async def get_by_contact_id(self, contact_id: int | str) -> list[Activity]:
        """Return a contact's activities."""
        params = self.query_params(where_equals("contact_id_c", int(contact_id)))
        return await self._fetch(params, f"Error fetching activities for contact {contact_id}")

    async def get_by_deal_id(self, deal_id: int | str) -> list[Activity]:
        """Return the activities logged against a deal."""
        params = self.query_params(where_equals("deal_id_c", int(deal_id)))
        return await self._fetch(params, f"Error fetching activities for deal {deal_id}")


class DealService(RecordService[Deal]):
    table = "deal_c"
    model = Deal
    label = "deal"
    label_plural = "deals"
    columns: ClassVar[dict[str, str]] = {
        "title": "title_c",
        "value": "value_c",
        "stage": "stage_c",
        "probability": "probability_c",
        "expected_close_date": "expected_close_date_c",
        "contact_id": "contact_id_c",
    }


class SalesOrderService(RecordService[SalesOrder]):
    """Sales orders list most recently modified first, one page of 100."""

    table = "sales_order_c"
    model = SalesOrder
    label = "sales order"
    label_plural = "sales orders"
    columns: ClassVar[dict[str, str]] = {
        "record_name": "Name",
        "deal_id": "deal_id_c",
        "contact_id": "contact_id_c",
        "order_date": "order_date_c",
        "amount": "amount_c",
        "description": "description_c",
    }
    order_by = [{"fieldName": "ModifiedOn", "sorttype": "DESC"}]
    paging = {"limit": 100, "offset": 0}
