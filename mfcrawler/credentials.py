"""Login credentials for the external login flow.

The crawler itself only consumes a persisted session; the login flow that
produces it needs a username, a password and a one-time code. Those come
from a secret store addressed by ``vault/item/field`` references. A
provider is built explicitly for each run and handed to whoever needs it.

Example:
    provider = CredentialProvider.from_config(config, KeyringSecretResolver(config))
    credentials = await provider.get_credentials()
"""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import keyring
import pyotp

from config.settings import CrawlerConfig
from mfcrawler.exceptions import CredentialConfigurationError, CredentialError
from mfcrawler.logger import get_logger

log = get_logger(__name__)

OTP_ATTRIBUTE = "?attribute=totp"


class SecretResolver(Protocol):
    async def resolve(self, reference: str) -> str:
        """Return the secret stored under ``reference`` (may be empty)."""
        ...


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


class KeyringSecretResolver:
    """Resolves ``vault/item/field`` references from the system keyring.

    Each vault is a keyring service named ``<keyring_service>/<vault>``;
    entries are stored under ``<item>/<field>``. For one-time code
    references the stored entry is the base32 TOTP seed and the current
    code is generated from it.
    """

    def __init__(self, config: CrawlerConfig) -> None:
        self.service = config.keyring_service

    async def resolve(self, reference: str) -> str:
        path, otp, _ = reference.partition(OTP_ATTRIBUTE)
        parts = path.split("/")
        if len(parts) != 3 or not all(parts):
            raise CredentialError(reference, "expected 'vault/item/field'")
        vault, item, field = parts

        secret = await asyncio.to_thread(
            keyring.get_password, f"{self.service}/{vault}", f"{item}/{field}"
        )
        if not secret or not otp:
            return secret or ""

        try:
            return pyotp.TOTP(secret.replace(" ", "")).now()
        except (ValueError, TypeError) as exc:
            raise CredentialError(reference, f"stored seed is not valid base32: {exc}") from exc


class CredentialProvider:
    """Fetches login credentials through a secret resolver.

    Args:
        resolver: Backend that resolves secret references.
        vault: Vault holding the login item.
        item: Login item name.
        totp_field: Field of the item holding the one-time code seed.
            Only required by ``get_otp``.
    """

    def __init__(
        self,
        resolver: SecretResolver,
        vault: str,
        item: str,
        totp_field: str = "",
    ) -> None:
        if not vault:
            raise CredentialConfigurationError("secret_vault", vault, "secret vault is not set")
        if not item:
            raise CredentialConfigurationError("secret_item", item, "secret item is not set")

        self.resolver = resolver
        self.vault = vault
        self.item = item
        self.totp_field = totp_field

    @classmethod
    def from_config(cls, config: CrawlerConfig, resolver: SecretResolver) -> "CredentialProvider":
        return cls(
            resolver,
            vault=config.secret_vault,
            item=config.secret_item,
            totp_field=config.secret_totp_field,
        )

    def reference(self, field: str) -> str:
        return f"{self.vault}/{self.item}/{field}"

    async def get_credentials(self) -> Credentials:
        """Resolve username and password.

        Raises:
            CredentialError: If either value resolves to nothing.
        """
        username_ref = self.reference("username")
        password_ref = self.reference("password")

        username = await self.resolver.resolve(username_ref)
        password = await self.resolver.resolve(password_ref)

        if not username or not password:
            missing = username_ref if not username else password_ref
            raise CredentialError(missing, "resolved to an empty value")

        log.info("Credentials resolved", vault=self.vault, item=self.item)
        return Credentials(username=username, password=password)

    async def get_otp(self) -> str:
        """Resolve the current one-time code.

        Raises:
            CredentialConfigurationError: If no one-time code field is configured.
            CredentialError: If the code resolves to nothing.
        """
        if not self.totp_field:
            raise CredentialConfigurationError(
                "secret_totp_field", self.totp_field, "one-time code field is not set"
            )

        reference = self.reference(self.totp_field) + OTP_ATTRIBUTE
        code = await self.resolver.resolve(reference)
        if not code:
            raise CredentialError(reference, "one-time code resolved to an empty value")
        return code
