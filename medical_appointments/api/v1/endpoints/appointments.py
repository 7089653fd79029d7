"""Appointment endpoints."""

from fastapi import APIRouter, Path, status

from medical_appointments.dependencies import AppointmentServiceDep
from medical_appointments.schemas.appointments import (
    Appointment,
    AppointmentCreate,
    AppointmentListResponse,
)

router = APIRouter()


@router.post(
    "",
    response_model=Appointment,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Request a new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    service: AppointmentServiceDep,
) -> Appointment:
    """
    Request an appointment for a subject.

    The appointment is returned in pending status; its id is the tracking
    handle for polling the subject's appointments.

    Args:
        data: Appointment request
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.submit(data)


@router.get(
    "/{subject_id}",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a subject's appointments",
)
async def list_appointments(
    service: AppointmentServiceDep,
    subject_id: str = Path(..., min_length=1, max_length=100),
) -> AppointmentListResponse:
    """
    List every appointment of a subject with its current status.

    Args:
        service: Appointment service
        subject_id: Subject identifier

    Returns:
        The subject's appointments
    """
    items = await service.list_by_subject(subject_id)
    return AppointmentListResponse(total=len(items), items=items)
