# directory.py
import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .errors import ClientNotFound, DuplicateClient, HasDependents, ProviderNotFound
from .models import Availability, Client, Provider, Reservation, Slot, SLOT_AVAILABLE
from .store import read_scope, transaction


def serialize_provider(provider: Provider):
    return {"id": provider.id, "name": provider.name}


def serialize_client(client: Client):
    return {
        "id": client.id,
        "name": client.name,
        "email": client.email,
        "phone_number": client.phone_number,
    }


def get_provider(db: Session, provider_id: int) -> Provider:
    with read_scope(db):
        provider = db.get(Provider, provider_id)
    if not provider:
        raise ProviderNotFound()
    return provider


def get_client(db: Session, client_id: int) -> Client:
    with read_scope(db):
        client = db.get(Client, client_id)
    if not client:
        raise ClientNotFound()
    return client


def create_provider(db: Session, name: str) -> Provider:
    with transaction(db):
        provider = Provider(name=name)
        db.add(provider)
    with read_scope(db):
        db.refresh(provider)
    logging.info(f"Provider {provider.id} created")
    return provider


def list_providers(db: Session):
    with read_scope(db):
        return db.query(Provider).order_by(Provider.id).all()


def update_provider(db: Session, provider_id: int, name: str = None) -> Provider:
    with transaction(db):
        provider = get_provider(db, provider_id)
        provider.name = name or provider.name
    with read_scope(db):
        db.refresh(provider)
    logging.info(f"Provider {provider_id} updated")
    return provider


def delete_provider(db: Session, provider_id: int):
    """
    Delete a provider together with its slots and availability windows.

    Refused with HasDependents while any of its slots is reserved or confirmed;
    those bookings belong to clients and are never dropped implicitly.
    """
    with transaction(db):
        provider = get_provider(db, provider_id)
        booked = db.query(Slot).filter(
            Slot.provider_id == provider.id,
            Slot.status != SLOT_AVAILABLE
        ).count()
        if booked:
            raise HasDependents(f"Provider {provider_id} has {booked} booked slot(s)")

        db.execute(delete(Slot).where(Slot.provider_id == provider.id))
        db.execute(delete(Availability).where(Availability.provider_id == provider.id))
        db.delete(provider)
    logging.info(f"Provider {provider_id} deleted with its slots and availability")


def create_client(db: Session, name: str, email: str, phone_number: str = None) -> Client:
    with transaction(db):
        existing_client = db.query(Client).filter(Client.email == email).first()
        if existing_client:
            raise DuplicateClient()
        client = Client(name=name, email=email, phone_number=phone_number)
        db.add(client)
    with read_scope(db):
        db.refresh(client)
    logging.info(f"Client {client.id} created")
    return client


def list_clients(db: Session):
    with read_scope(db):
        return db.query(Client).order_by(Client.id).all()


def update_client(db: Session, client_id: int, name: str = None, email: str = None,
                  phone_number: str = None) -> Client:
    """Change the given fields of a client. Fields left as None keep their value."""
    with transaction(db):
        client = get_client(db, client_id)
        if email and email != client.email:
            taken = db.query(Client).filter(Client.email == email, Client.id != client.id).first()
            if taken:
                raise DuplicateClient()
            client.email = email
        client.name = name or client.name
        if phone_number is not None:
            client.phone_number = phone_number
    with read_scope(db):
        db.refresh(client)
    logging.info(f"Client {client_id} updated")
    return client


def delete_client(db: Session, client_id: int):
    with transaction(db):
        client = get_client(db, client_id)
        reservations = db.query(Reservation).filter(Reservation.client_id == client.id).count()
        if reservations:
            raise HasDependents(f"Client {client_id} still has {reservations} reservation(s)")
        db.delete(client)
    logging.info(f"Client {client_id} deleted")
