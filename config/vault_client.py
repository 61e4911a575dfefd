"""
HashiCorp Vault client module.

Provides centralized secrets management with caching and .env fallback.
Supports both token auth (dev) and AppRole auth (production).

The back office reads two secrets through here:
- the session signing key (JWT_SECRET)
- the Fernet key protecting stored TOTP secrets (MFA_ENCRYPTION_KEY)
"""

import os
import time
import logging
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class VaultConfig:
    """Vault configuration loaded from environment."""

    vault_addr: str
    vault_token: str  # For dev/token auth
    vault_role_id: str  # For AppRole auth (production)
    vault_secret_id: str
    vault_mount_path: str
    vault_namespace: str
    use_vault: bool
    cache_ttl: int

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create configuration from environment variables."""
        return cls(
            vault_addr=os.getenv("VAULT_ADDR", "http://localhost:8200"),
            vault_token=os.getenv("VAULT_TOKEN", ""),
            vault_role_id=os.getenv("VAULT_ROLE_ID", ""),
            vault_secret_id=os.getenv("VAULT_SECRET_ID", ""),
            vault_mount_path=os.getenv("VAULT_MOUNT_PATH", "secret"),
            vault_namespace=os.getenv("VAULT_NAMESPACE", ""),
            use_vault=os.getenv("USE_VAULT", "false").lower() == "true",
            cache_ttl=int(os.getenv("VAULT_CACHE_TTL", "300")),
        )


class VaultClient:
    """HashiCorp Vault client with caching and fallback."""

    def __init__(self, config: VaultConfig | None = None):
        """Initialize Vault client.

        Args:
            config: VaultConfig instance, or None to load from env
        """
        self.config = config or VaultConfig.from_env()
        self._client = None
        self._cache: dict[str, Any] = {}
        self._cache_timestamps: dict[str, float] = {}
        self._authenticated = False

    @property
    def client(self):
        """Lazy-load hvac client."""
        if self._client is None:
            try:
                import hvac

                self._client = hvac.Client(
                    url=self.config.vault_addr,
                    namespace=self.config.vault_namespace or None,
                )

                if self.config.vault_token:
                    # Token auth (development)
                    self._client.token = self.config.vault_token
                    self._authenticated = True
                elif self.config.vault_role_id and self.config.vault_secret_id:
                    # AppRole auth (production)
                    self._client.auth.approle.login(
                        role_id=self.config.vault_role_id,
                        secret_id=self.config.vault_secret_id,
                    )
                    self._authenticated = True

                if self._authenticated and not self._client.is_authenticated():
                    logger.warning("Vault authentication failed")
                    self._authenticated = False

            except ImportError:
                logger.warning("hvac not installed, Vault integration disabled")
                self._client = None
            except Exception as e:
                logger.warning(f"Failed to connect to Vault: {e}")
                self._client = None

        return self._client

    def _is_cache_valid(self, key: str) -> bool:
        """Check if cache entry is still valid."""
        if key not in self._cache_timestamps:
            return False
        return (time.time() - self._cache_timestamps[key]) < self.config.cache_ttl

    def _get_cached(self, key: str) -> Any | None:
        if self._is_cache_valid(key):
            return self._cache.get(key)
        return None

    def _set_cached(self, key: str, value: Any) -> None:
        self._cache[key] = value
        self._cache_timestamps[key] = time.time()

    def is_available(self) -> bool:
        """Check if Vault is available and authenticated."""
        if not self.config.use_vault:
            return False
        return self.client is not None and self._authenticated

    def get_secret(self, path: str, key: str) -> str | None:
        """Get a single secret value from Vault.

        Args:
            path: Secret path (e.g., "backoffice/session")
            key: Key within the secret (e.g., "signing_key")

        Returns:
            Secret value or None
        """
        secrets = self.get_secrets(path)
        return secrets.get(key) if secrets else None

    def get_secrets(self, path: str) -> dict[str, str] | None:
        """Get all secrets at a path from Vault (KV v2)."""
        cache_key = f"secrets:{path}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        if not self.is_available():
            return None

        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.config.vault_mount_path,
            )
            if response and "data" in response and "data" in response["data"]:
                secrets = response["data"]["data"]
                self._set_cached(cache_key, secrets)
                return secrets
        except Exception as e:
            logger.debug(f"Failed to read secret at {path}: {e}")

        return None


class SecretsManager:
    """High-level secrets interface with .env fallback.

    Acts as the SigningKeyProvider for session tokens.

    Usage:
        secrets = SecretsManager()
        signing_key = secrets.get_session_signing_key()
    """

    def __init__(self, vault_client: VaultClient | None = None):
        self._vault = vault_client or VaultClient()

    def _get_from_vault_or_env(
        self,
        vault_path: str,
        vault_key: str,
        env_var: str,
        default: str = "",
    ) -> str:
        """Get secret from Vault, falling back to environment variable."""
        if self._vault.is_available():
            value = self._vault.get_secret(vault_path, vault_key)
            if value:
                return value

        return os.getenv(env_var, default)

    def get_session_signing_key(self) -> str:
        """Get the session token signing key.

        Raises:
            ValueError: Neither Vault nor the environment holds a key.
        """
        key = self._get_from_vault_or_env(
            vault_path="backoffice/session",
            vault_key="signing_key",
            env_var="JWT_SECRET",
            default="",
        )
        if not key:
            raise ValueError(
                "JWT_SECRET env var is required. "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        return key

    def get_mfa_encryption_key(self) -> str:
        """Get MFA TOTP encryption key (empty string when not configured)."""
        return self._get_from_vault_or_env(
            vault_path="backoffice/mfa",
            vault_key="encryption_key",
            env_var="MFA_ENCRYPTION_KEY",
            default="",
        )


# Singleton instance
_secrets_manager: SecretsManager | None = None


def get_secrets_manager() -> SecretsManager:
    """Get or create SecretsManager singleton."""
    global _secrets_manager
    if _secrets_manager is None:
        _secrets_manager = SecretsManager()
    return _secrets_manager
