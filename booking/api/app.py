"""FastAPI application factory for the booking API."""

import datetime as dt

from fastapi import APIRouter, FastAPI, Response
from starlette.types import Lifespan

from booking.api.errors import register_error_handlers
from booking.domain.models import AppointmentRequest, AppointmentState, Availability
from booking.domain.projections import AppointmentView, BookingConfirmation
from booking.ports import AbstractBookingService

API_PREFIX = "/api/v1/appointments"


def build_router(service: AbstractBookingService) -> APIRouter:
    router = APIRouter(prefix=API_PREFIX, tags=["appointments"])

    # --- CRUD ---

    @router.post("", response_model=BookingConfirmation, status_code=201)
    async def create_appointment(data: AppointmentRequest) -> BookingConfirmation:
        """Book an appointment; it starts in the pending state."""
        return await service.create_appointment(data)

    @router.get("", response_model=list[AppointmentView])
    async def list_appointments() -> list[AppointmentView]:
        return await service.list_appointments()

    @router.get("/{appointment_id}", response_model=AppointmentView)
    async def get_appointment(appointment_id: int) -> AppointmentView:
        return await service.get_appointment(appointment_id)

    @router.put("/{appointment_id}", response_model=AppointmentView)
    async def update_appointment(appointment_id: int, data: AppointmentRequest) -> AppointmentView:
        """Replace customer and scheduling fields. State and code have their own endpoints."""
        return await service.update_appointment(appointment_id, data)

    @router.delete("/{appointment_id}", status_code=204)
    async def delete_appointment(appointment_id: int) -> Response:
        await service.delete_appointment(appointment_id)
        return Response(status_code=204)

    # --- Lookups ---

    @router.get("/code/{code}", response_model=AppointmentView)
    async def get_by_code(code: str) -> AppointmentView:
        return await service.get_by_confirmation_code(code)

    @router.get("/customer/email/{email}", response_model=list[AppointmentView])
    async def list_by_email(email: str) -> list[AppointmentView]:
        return await service.list_by_email(email)

    @router.get("/state/{state}", response_model=list[AppointmentView])
    async def list_by_state(state: AppointmentState) -> list[AppointmentView]:
        return await service.list_by_state(state)

    @router.get("/date/{date}", response_model=list[AppointmentView])
    async def list_by_date(date: dt.date) -> list[AppointmentView]:
        return await service.list_by_date(date)

    @router.get("/availability/{date}", response_model=Availability)
    async def get_availability(date: dt.date) -> Availability:
        """30-minute slots of the business day, split into available and occupied."""
        return await service.get_availability(date)

    # --- Lifecycle ---

    @router.patch("/{appointment_id}/confirm", response_model=AppointmentView)
    async def confirm_appointment(appointment_id: int) -> AppointmentView:
        return await service.confirm_appointment(appointment_id)

    @router.patch("/{appointment_id}/cancel", response_model=AppointmentView)
    async def cancel_appointment(appointment_id: int) -> AppointmentView:
        return await service.cancel_appointment(appointment_id)

    @router.patch("/{appointment_id}/complete", response_model=AppointmentView)
    async def complete_appointment(appointment_id: int) -> AppointmentView:
        return await service.complete_appointment(appointment_id)

    return router


def create_app(
    service: AbstractBookingService,
    title: str = "Appointment Booking API",
    lifespan: Lifespan[FastAPI] | None = None,
) -> FastAPI:
    """Create the FastAPI app around an already-built booking service."""
    app = FastAPI(title=title, version="0.1.0", lifespan=lifespan)
    app.include_router(build_router(service))
    register_error_handlers(app)
    return app
