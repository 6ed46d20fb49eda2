"""Wallet authentication by signed single-use challenges."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from rentstream.core.clock import Clock, system_clock
from rentstream.core.errors import InvalidRequest, InvalidSignature, NonceExpiredOrMissing
from rentstream.core.security import normalize_wallet, verify_wallet_signature
from rentstream.db.time import as_utc
from rentstream.models.auth_nonce import AuthNonce
from rentstream.models.profile import Profile
from rentstream.repositories.rental_repo import ProfileRepository

logger = logging.getLogger(__name__)

CHALLENGE_ENTROPY_BYTES = 16


class NonceAuthenticator:
    """Issues challenges and verifies the wallet signatures over them.

    A wallet holds at most one pending challenge; issuing a new one replaces
    the old. A challenge is consumed only by a successful verification.
    """

    def __init__(
        self,
        session: Session,
        *,
        app_name: str,
        ttl_seconds: int = 300,
        clock: Clock = system_clock,
    ) -> None:
        self.session = session
        self.app_name = app_name
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    @staticmethod
    def _wallet(wallet: str) -> str:
        try:
            return normalize_wallet(wallet)
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc

    def build_challenge(self) -> str:
        return (
            f"Sign this message to authenticate with {self.app_name}: "
            f"{secrets.token_hex(CHALLENGE_ENTROPY_BYTES)}"
        )

    def issue_nonce(self, wallet: str) -> AuthNonce:
        """Create or replace the pending challenge for ``wallet``."""
        address = self._wallet(wallet)
        expires_at = self.clock.now() + timedelta(seconds=self.ttl_seconds)
        nonce = self.session.get(AuthNonce, address)
        if nonce is None:
            nonce = AuthNonce(wallet_address=address)
            self.session.add(nonce)
        nonce.challenge = self.build_challenge()
        nonce.expires_at = expires_at
        self.session.commit()
        return nonce

    def verify(self, wallet: str, challenge: str, signature: str) -> Profile:
        """Check ``signature`` over the pending challenge and return the wallet's profile.

        Raises:
            NonceExpiredOrMissing: No pending challenge, it expired, or
                ``challenge`` is not the one issued.
            InvalidSignature: The signature was not produced by ``wallet``.
        """
        address = self._wallet(wallet)
        nonce = self.session.get(AuthNonce, address)
        if nonce is None:
            raise NonceExpiredOrMissing()
        if self.clock.now() >= as_utc(nonce.expires_at):
            raise NonceExpiredOrMissing("Challenge has expired")
        if nonce.challenge != challenge:
            raise NonceExpiredOrMissing("Challenge does not match the one issued")

        if not verify_wallet_signature(address, challenge, signature):
            raise InvalidSignature()

        self.session.delete(nonce)
        profile = ProfileRepository(self.session).get_or_create(address)
        self.session.commit()
        logger.info("Authenticated wallet %s", address)
        return profile
