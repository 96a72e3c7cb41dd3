from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from .availability import list_available_slots, list_booked_slots, submit_availability
from .dependencies import get_clock, get_db, get_policy, get_session_factory, get_sweep_lock
from .directory import (
    create_client, create_provider, delete_client, delete_provider, get_client, get_provider,
    list_clients, list_providers, serialize_client, serialize_provider, update_client, update_provider,
)
from .policy import BookingPolicy
from .reconciler import expire_stale_reservations
from .reservations import confirm_reservation, get_reservation, reserve_slot
from .utils import isoformat, serialize_availability, serialize_reservation, serialize_slot
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
import logging

router = APIRouter()


class ProviderRequest(BaseModel):
    name: str


class ClientRequest(BaseModel):
    name: str
    email: str
    phone_number: Optional[str] = None


class ProviderUpdateRequest(BaseModel):
    name: Optional[str] = None


class ClientUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class AvailabilityRequest(BaseModel):
    start_time: datetime
    end_time: datetime


class ReserveSlotRequest(BaseModel):
    slot_id: int


class ConfirmReservationRequest(BaseModel):
    reservation_id: int


@router.get("/")
def root():
    return {"status": "running"}


@router.post("/providers")
def register_provider(request: ProviderRequest, db: Session = Depends(get_db)):
    provider = create_provider(db, request.name)
    return {"message": "Provider created successfully", "provider": serialize_provider(provider)}


@router.get("/providers")
def get_providers(db: Session = Depends(get_db)):
    return [serialize_provider(provider) for provider in list_providers(db)]


@router.get("/providers/{provider_id}")
def get_provider_details(provider_id: int, db: Session = Depends(get_db)):
    return serialize_provider(get_provider(db, provider_id))


@router.put("/providers/{provider_id}")
def edit_provider(provider_id: int, request: ProviderUpdateRequest, db: Session = Depends(get_db)):
    provider = update_provider(db, provider_id, request.name)
    return {"message": "Provider updated successfully", "provider": serialize_provider(provider)}


@router.delete("/providers/{provider_id}")
def remove_provider(provider_id: int, db: Session = Depends(get_db)):
    delete_provider(db, provider_id)
    return {"message": "Provider deleted successfully"}


@router.post('/providers/{provider_id}/availability')
def set_provider_availability(
        provider_id: int,
        request: AvailabilityRequest,
        db: Session = Depends(get_db),
        policy: BookingPolicy = Depends(get_policy)
):
    logging.info(f"Setting availability for provider {provider_id}")
    availability, slots = submit_availability(db, provider_id, request.start_time, request.end_time, policy)
    return {
        "message": "Availability and slots created successfully",
        "availability": serialize_availability(availability),
        "slots": [serialize_slot(slot) for slot in slots],
    }


@router.get('/providers/{provider_id}/available-slots')
def get_available_slots(provider_id: int, db: Session = Depends(get_db)):
    return {"available_slots": [serialize_slot(slot) for slot in list_available_slots(db, provider_id)]}


@router.get('/providers/{provider_id}/booked-slots')
def get_booked_slots(provider_id: int, db: Session = Depends(get_db)):
    return {
        "booked_slots": [
            serialize_slot(slot, include_private_info=True) for slot in list_booked_slots(db, provider_id)
        ]
    }


@router.post("/clients")
def register_client(request: ClientRequest, db: Session = Depends(get_db)):
    client = create_client(db, request.name, request.email, request.phone_number)
    return {"message": "Client created successfully", "client": serialize_client(client)}


@router.get("/clients")
def get_clients(db: Session = Depends(get_db)):
    return [serialize_client(client) for client in list_clients(db)]


@router.get("/clients/{client_id}")
def get_client_details(client_id: int, db: Session = Depends(get_db)):
    return serialize_client(get_client(db, client_id))


@router.put("/clients/{client_id}")
def edit_client(client_id: int, request: ClientUpdateRequest, db: Session = Depends(get_db)):
    client = update_client(db, client_id, request.name, request.email, request.phone_number)
    return {"message": "Client updated successfully", "client": serialize_client(client)}


@router.delete("/clients/{client_id}")
def remove_client(client_id: int, db: Session = Depends(get_db)):
    delete_client(db, client_id)
    return {"message": "Client deleted successfully"}


@router.post('/clients/{client_id}/reserve')
def reserve_appointment(
        client_id: int,
        request: ReserveSlotRequest,
        db: Session = Depends(get_db),
        policy: BookingPolicy = Depends(get_policy),
        clock=Depends(get_clock)
):
    reservation = reserve_slot(db, client_id, request.slot_id, policy, now=clock())
    return {"reservation_id": reservation.id, "expires_at": isoformat(reservation.expires_at)}


@router.post('/clients/{client_id}/confirm')
def confirm_appointment(
        client_id: int,
        request: ConfirmReservationRequest,
        db: Session = Depends(get_db),
        policy: BookingPolicy = Depends(get_policy),
        clock=Depends(get_clock)
):
    reservation = confirm_reservation(db, client_id, request.reservation_id, policy, now=clock())
    return {
        "message": "Reservation confirmed successfully",
        "reservation_id": reservation.id,
        "confirmed_at": isoformat(reservation.confirmed_at),
    }


@router.get('/reservations/{reservation_id}')
def get_reservation_details(reservation_id: int, db: Session = Depends(get_db)):
    return serialize_reservation(get_reservation(db, reservation_id))


@router.post('/admin/expire-reservations')
def expire_reservations(
        session_factory=Depends(get_session_factory),
        policy: BookingPolicy = Depends(get_policy),
        clock=Depends(get_clock),
        lock=Depends(get_sweep_lock)
):
    released = expire_stale_reservations(session_factory, policy, now=clock(), lock=lock)
    return {"message": "Expired reservations have been released", "released_count": released}
