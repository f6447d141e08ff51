import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from client.api import ApiClient, ApiError
from client.notify import Notifier
from core.customers import resolve_customer
from core.errors import JobValidationError
from core.job_builder import JobForm, apply_pricing, build_job_payload, validate_job_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowOptions:
    # bill a flat amount typed by the operator instead of pricing each line
    use_collection_amount: bool = False
    show_truck: bool = True


class JobWorkflow:
    """
    The add-delivery screen: keeps prices current while the form is edited
    and turns the finished form into a job on the server.
    """

    def __init__(self, api: ApiClient, notifier: Notifier, options: WorkflowOptions = WorkflowOptions()):
        self.api = api
        self.notifier = notifier
        self.options = options
        # last catalog the form was priced against
        self.catalog: Optional[List[dict]] = None
        self.customer: Optional[Mapping] = None

    def load_catalog(self, customer: Optional[Mapping] = None) -> List[dict]:
        """Customer-specific prices when a known customer is picked, else the active catalog."""
        try:
            if customer and customer.get("id") is not None:
                catalog = self.api.customer_pricing(customer["id"])
            else:
                catalog = self.api.active_products()
        except ApiError as e:
            logger.error("Failed to load catalog: %s", e.message)
            self.notifier.error(e.message)
            return []
        self.catalog, self.customer = catalog, customer
        return catalog

    def reprice(self, form: JobForm, catalog, customer: Optional[Mapping] = None) -> float:
        self.catalog, self.customer = catalog, customer
        if self.options.use_collection_amount:
            return 0.0
        return apply_pricing(form, catalog, customer)

    def submit(self, form: JobForm, selected_customer: Optional[Mapping] = None, to_be_scheduled: bool = False) -> Optional[dict]:
        try:
            validate_job_form(form, to_be_scheduled)
        except JobValidationError as e:
            self.notifier.error(e.message)
            return None

        if not self.options.show_truck:
            form.truck = ""
        if self.catalog is not None and not self.options.use_collection_amount:
            # quantities may have changed since the last reprice
            apply_pricing(form, self.catalog, selected_customer or self.customer)

        resolution = resolve_customer(
            selected_customer,
            form.customer_name,
            form.customer_phone,
            form.address,
            form.special_instructions,
            self.api.create_customer,
        )
        if resolution.warning:
            self.notifier.warning(resolution.warning)

        payload = build_job_payload(
            form,
            to_be_scheduled,
            selected_customer,
            resolution.customer_id,
            use_collection_amount=self.options.use_collection_amount,
        )
        try:
            job = self.api.create_job(payload)
        except ApiError as e:
            logger.error("Failed to create job for %r: %s", form.customer_name, e.message)
            self.notifier.error(e.message)
            return None

        if to_be_scheduled:
            self.notifier.success("Delivery added to the to-be-scheduled list")
        else:
            self.notifier.success("Delivery scheduled successfully!")
        return job
