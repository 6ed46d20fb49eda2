"""Data access helpers for rentals and profiles."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from rentstream.models.profile import Profile
from rentstream.models.rental import Rental

__all__ = ["ProfileRepository", "RentalRepository"]


class ProfileRepository:
    """Access to wallet profiles."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, wallet_address: str) -> Profile | None:
        return self.session.get(Profile, wallet_address.lower())

    def get_or_create(self, wallet_address: str) -> Profile:
        """Return the profile for ``wallet_address``, creating a default one if missing."""
        wallet = wallet_address.lower()
        profile = self.session.get(Profile, wallet)
        if profile is None:
            profile = Profile(
                wallet_address=wallet,
                display_name=Profile.default_display_name(wallet),
            )
            self.session.add(profile)
            self.session.flush()
        return profile


class RentalRepository:
    """Access to rental grants."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, rental_id: str) -> Rental | None:
        return self.session.get(Rental, rental_id)

    def get_by_tx_hash(self, tx_hash: str) -> Rental | None:
        result = self.session.execute(select(Rental).where(Rental.tx_hash == tx_hash.lower()))
        return result.scalars().first()

    def list_live_for_wallet(self, wallet_address: str, now: datetime) -> list[Rental]:
        """Return the wallet's active, unexpired rentals, newest first."""
        result = self.session.execute(
            select(Rental)
            .options(selectinload(Rental.catalog_item))
            .where(Rental.wallet_address == wallet_address.lower(), Rental.is_active.is_(True))
            .order_by(Rental.created_at.desc())
        )
        return [rental for rental in result.scalars() if not rental.has_expired(now)]

    def add(self, rental: Rental) -> Rental:
        self.session.add(rental)
        self.session.flush()
        return rental
