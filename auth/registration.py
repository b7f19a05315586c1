"""Two-party registration: an account activates only after both the user and
an administrator confirm it with their own passcode."""

import logging
from typing import Optional

from pydantic import BaseModel

from .credentials import CredentialStore
from .errors import AlreadyVerified, NotFound, OTPNotFound, ValidationError
from .models import OTPRole, User
from .otp import OTPManager

logger = logging.getLogger(__name__)

REQUIRED_ROLES = frozenset(OTPRole)


class IssuedPasscodes(BaseModel):
    """Passcodes the notifier must deliver, keyed by role."""

    user: User
    codes: dict[OTPRole, str]


class ConfirmationResult(BaseModel):
    user: User
    confirmed: list[OTPRole]
    pending: list[OTPRole]

    @property
    def activated(self) -> bool:
        return not self.pending


class RegistrationFlow:
    """Glue between ``CredentialStore`` and ``OTPManager`` for sign-up."""

    def __init__(self, credentials: CredentialStore, otp: OTPManager):
        self._credentials = credentials
        self._otp = otp

    async def start(
        self, name: str, email: str, password: str, phone: Optional[str] = None
    ) -> IssuedPasscodes:
        user = await self._credentials.register(name, email, password, phone)
        codes = {}
        for role in OTPRole:
            codes[role] = await self._otp.issue(user.id, user.email, role)
        return IssuedPasscodes(user=user, codes=codes)

    async def confirm(
        self, user_id: str, submitted: dict[OTPRole, str]
    ) -> ConfirmationResult:
        """Validate each submitted passcode for its own role.

        Every successful validation is recorded on the identity. The account is
        activated once both roles are recorded, whether they arrive in one call
        or in separate ones. The first failing passcode raises and stops the
        call; passcodes validated before it stay recorded.
        """
        try:
            user = await self._credentials.get_user(user_id)
        except NotFound:
            # Unknown, malformed or expired registrations fail like a bad code
            raise OTPNotFound()
        if user.is_verified:
            raise AlreadyVerified()

        for role, code in submitted.items():
            await self._otp.validate(code.strip(), user.id, role)
            user = await self._credentials.record_confirmation(user.id, role)

        confirmed = set(user.confirmed_roles)
        if REQUIRED_ROLES <= confirmed:
            user = await self._credentials.mark_verified(user.id)
            logger.info(f"User {user.id} activated after user and admin confirmation")

        return ConfirmationResult(
            user=user,
            confirmed=[role for role in OTPRole if role in confirmed],
            pending=[role for role in OTPRole if role not in confirmed],
        )

    async def resend(self, user_id: str, role: Optional[OTPRole] = None) -> IssuedPasscodes:
        """Reissue the passcode for ``role``, or for every role still unconfirmed."""
        user = await self._credentials.get_user(user_id)
        if user.is_verified:
            raise AlreadyVerified()

        if role is not None:
            if role in user.confirmed_roles:
                raise ValidationError(f"The {role.value} passcode is already confirmed")
            roles = [role]
        else:
            roles = [r for r in OTPRole if r not in user.confirmed_roles]

        codes = {}
        for r in roles:
            codes[r] = await self._otp.issue(user.id, user.email, r)
        return IssuedPasscodes(user=user, codes=codes)
