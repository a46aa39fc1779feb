"""
core/config.py -- Runtime configuration via pydantic-settings.

Every setting can come from an ADREMEDIATE_* environment variable or a .env
file next to the working directory (e.g. ADREMEDIATE_SERVER=dc01.corp.local).
Nothing else in the tool reads os.environ directly; call get_settings().

In tests: call get_settings.cache_clear() after changing the environment.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("adremediate.config")


class Settings(BaseSettings):
    """Connection, input and output settings for a remediation run.

    All fields have defaults so Settings() works on a domain controller with
    no configuration at all: the domain is then discovered through WMI and
    the server defaults to the domain name (DNS resolves it to a DC).
    """

    model_config = SettingsConfigDict(
        env_prefix="ADREMEDIATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Directory connection
    # ------------------------------------------------------------------

    server: str = ""
    domain: str = ""
    # DOMAIN\user binds with NTLM, anything else (a DN or UPN) with SIMPLE.
    username: str = ""
    password: str = ""
    use_ssl: bool = False
    connect_timeout: int = 10

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    policy_config: str = "config/password_policies.xml"
    # Relative to the domain DN.
    group_container: str = "CN=Users"

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    event_source: str = "PingCastleRemediation"
    log_file: str = "ad_remediation.log"
    report_dir: str = "reports/out"

    @model_validator(mode="after")
    def validate_credentials(self) -> "Settings":
        """A username without a password would fall back to an anonymous-looking bind."""
        if self.username and not self.password:
            raise ValueError(
                "ADREMEDIATE_PASSWORD is required when ADREMEDIATE_USERNAME is set."
            )
        if self.password and not self.username:
            logger.warning("ADREMEDIATE_PASSWORD is set without a username and will be ignored.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton (instantiated on first call)."""
    return Settings()
