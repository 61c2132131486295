"""Unified configuration for the ERP reporting core.

This module provides a single configuration class used across all report
types (closing, challan, color-wise, sewing, hourly, factory). Values come
from the environment so that deployments never hardcode tenant details:

Environment:
    ERP_BASE_URL: Root of the ERP install, e.g. ``http://erp.local:8022/erp``.
    ERP_LOGIN_URL: Login endpoint (defaults to ``<base>/login.php``).
    ERP_USERNAME / ERP_PASSWORD: Report user credentials.
    ERP_REPORT_URL: Closing (cutting lay production) report controller.
    ERP_CHALLAN_REPORT_URL: Sewing input challan report controller.
    ERP_CHALLAN_SEARCH_URL: Bundle wise sewing input controller (drill-down).
    ERP_SEWING_REPORT_URL: Sewing input and output report controller.
    ERP_HOURLY_REPORT_URL: Hourly production monitoring controller.
    ERP_FACTORY_REPORT_URL: Factory monthly production controller.
    ERP_TIMEOUT=60          # seconds per HTTP call
    ERP_RETRIES=0           # urllib3 adapter retries per call
    ERP_SWEEP_YEARS=2027,2026,2025,2024,2023
    ERP_SWEEP_COMPANIES=1,2,3,4,5
    ERP_MAX_POOL_SESSIONS=30
    ERP_STORE_PATH=./data/store
    MONGODB_URI / MONGODB_DB_NAME: Use MongoDB as the document store.

Sweep bounds encode knowledge of one ERP deployment, so they live here as
configuration and default to a window around the current year.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path

from erp_core.exceptions import ConfigError

# Controller paths relative to ERP_BASE_URL
LOGIN_PATH = "/login.php"
CLOSING_REPORT_PATH = "/prod_planning/reports/requires/cutting_lay_production_report_controller.php"
CHALLAN_REPORT_PATH = "/production/reports/requires/sewing_input_challan_controller.php"
CHALLAN_SEARCH_PATH = "/production/requires/bundle_wise_sewing_input_controller.php"
SEWING_REPORT_PATH = "/production/reports/requires/sewing_input_and_output_report_controller.php"
HOURLY_REPORT_PATH = (
    "/production/reports/requires/"
    "company_wise_hourly_production_monitoring_chaity_v2_controller.php"
)
FACTORY_REPORT_PATH = (
    "/production/reports/requires/factory_monthly_production_report_controller_chaity.php"
)

URL_SETTINGS = {
    "login_url": ("ERP_LOGIN_URL", LOGIN_PATH),
    "closing_report_url": ("ERP_REPORT_URL", CLOSING_REPORT_PATH),
    "challan_report_url": ("ERP_CHALLAN_REPORT_URL", CHALLAN_REPORT_PATH),
    "challan_search_url": ("ERP_CHALLAN_SEARCH_URL", CHALLAN_SEARCH_PATH),
    "sewing_report_url": ("ERP_SEWING_REPORT_URL", SEWING_REPORT_PATH),
    "hourly_report_url": ("ERP_HOURLY_REPORT_URL", HOURLY_REPORT_PATH),
    "factory_report_url": ("ERP_FACTORY_REPORT_URL", FACTORY_REPORT_PATH),
}


def _split_csv(raw: str | None) -> tuple[str, ...] | None:
    """Split a comma separated env value, ignoring blanks."""
    if raw is None:
        return None
    values = tuple(part.strip() for part in raw.split(",") if part.strip())
    return values or None


def _env_number(environ: Mapping[str, str], name: str, default: float, cast: type) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class SweepBounds:
    """Dimension values tried by the endpoint sweep, in sweep order.

    Attributes:
        years: Fiscal years for the closing report, newest first.
        company_ids: Company (tenant) ids for the closing report.
        closing_locations: Location / working company ids for the closing
            report, tried as the outermost dimension.
        challan_company_ids: Company ids for the challan and color-wise
            reports.
        sewing_years: Years for the sewing input/output report.
        sewing_wo_company_ids: Working (warehouse) company ids for the sewing
            report.
    """

    years: tuple[str, ...]
    company_ids: tuple[str, ...] = ("1", "2", "3", "4", "5")
    closing_locations: tuple[str, ...] = ("2", "0")
    challan_company_ids: tuple[str, ...] = ("1", "2", "3", "4")
    sewing_years: tuple[str, ...] = ()
    sewing_wo_company_ids: tuple[str, ...] = ("2",)

    @classmethod
    def default(cls, today: date | None = None) -> SweepBounds:
        """Build bounds around the current year.

        Args:
            today: Reference date (defaults to ``date.today()``).

        Returns:
            SweepBounds with years current+1 down to current-3 and sewing
            years current+1, current.

        Examples:
            >>> SweepBounds.default(date(2026, 3, 1)).years
            ('2027', '2026', '2025', '2024', '2023')
        """
        year = (today or date.today()).year
        return cls(
            years=tuple(str(y) for y in range(year + 1, year - 4, -1)),
            sewing_years=(str(year + 1), str(year)),
        )


@dataclass
class ERPConfig:
    """Connection, credential and tuning settings for the ERP integration.

    Attributes:
        base_url: Root URL of the ERP install (used to derive endpoint URLs).
        username: ERP report user.
        password: ERP report password.
        login_url ... factory_report_url: Endpoint URLs; ``None`` when neither
            the explicit env value nor ``base_url`` is available.
        timeout: Seconds per HTTP call.
        retries: urllib3 adapter retries per call.
        token_lifetime_seconds: Server-side lifetime of the ERP session cookie.
        refresh_ratio: Fraction of the lifetime after which the cookie is
            refreshed (0.8 -> 4 minutes for a 5 minute cookie).
        min_response_length: Bodies at or below this length are error pages.
        max_pool_sessions: Cap on parallel sessions for the color-wise
            drill-down.
        hourly_company_id: Company id posted to the hourly report.
        sweep: Dimension values for the endpoint sweep.
        store_path: Directory for the JSON document store.
        mongodb_uri: MongoDB connection string; selects the MongoDB store.
        mongodb_db_name: MongoDB database name.
    """

    base_url: str | None = None
    username: str | None = None
    password: str | None = None
    login_url: str | None = None
    closing_report_url: str | None = None
    challan_report_url: str | None = None
    challan_search_url: str | None = None
    sewing_report_url: str | None = None
    hourly_report_url: str | None = None
    factory_report_url: str | None = None
    timeout: float = 60.0
    retries: int = 0
    token_lifetime_seconds: int = 300
    refresh_ratio: float = 0.8
    min_response_length: int = 500
    max_pool_sessions: int = 30
    hourly_company_id: str = "2"
    sweep: SweepBounds = field(default_factory=SweepBounds.default)
    store_path: Path | None = None
    mongodb_uri: str | None = None
    mongodb_db_name: str = "erp_core"

    def __post_init__(self) -> None:
        if self.base_url:
            self.base_url = self.base_url.rstrip("/")
            for attr, (_, path) in URL_SETTINGS.items():
                if getattr(self, attr) is None:
                    setattr(self, attr, f"{self.base_url}{path}")
        if not 0 < self.refresh_ratio < 1:
            raise ConfigError("refresh_ratio must be between 0 and 1 (exclusive)")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        today: date | None = None,
    ) -> ERPConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``).
            today: Reference date for default sweep years.

        Returns:
            ERPConfig instance. Missing credentials are allowed here; they
            surface as a logged configuration error on first login.

        Raises:
            ConfigError: If a numeric setting cannot be parsed.

        Examples:
            >>> cfg = ERPConfig.from_env({"ERP_BASE_URL": "http://erp.local/erp"})
            >>> cfg.login_url
            'http://erp.local/erp/login.php'
        """
        env = os.environ if environ is None else environ

        defaults = SweepBounds.default(today)
        sweep = SweepBounds(
            years=_split_csv(env.get("ERP_SWEEP_YEARS")) or defaults.years,
            company_ids=_split_csv(env.get("ERP_SWEEP_COMPANIES")) or defaults.company_ids,
            closing_locations=_split_csv(env.get("ERP_SWEEP_LOCATIONS"))
            or defaults.closing_locations,
            challan_company_ids=_split_csv(env.get("ERP_SWEEP_CHALLAN_COMPANIES"))
            or defaults.challan_company_ids,
            sewing_years=_split_csv(env.get("ERP_SWEEP_SEWING_YEARS")) or defaults.sewing_years,
            sewing_wo_company_ids=_split_csv(env.get("ERP_SWEEP_SEWING_WO_COMPANIES"))
            or defaults.sewing_wo_company_ids,
        )

        store_raw = env.get("ERP_STORE_PATH")
        urls = {attr: env.get(var) or None for attr, (var, _) in URL_SETTINGS.items()}

        return cls(
            base_url=env.get("ERP_BASE_URL") or None,
            username=env.get("ERP_USERNAME") or None,
            password=env.get("ERP_PASSWORD") or None,
            timeout=_env_number(env, "ERP_TIMEOUT", 60.0, float),
            retries=int(_env_number(env, "ERP_RETRIES", 0, int)),
            max_pool_sessions=int(_env_number(env, "ERP_MAX_POOL_SESSIONS", 30, int)),
            sweep=sweep,
            store_path=Path(store_raw) if store_raw else None,
            mongodb_uri=env.get("MONGODB_URI") or None,
            mongodb_db_name=env.get("MONGODB_DB_NAME") or "erp_core",
            **urls,
        )

    @property
    def has_credentials(self) -> bool:
        """True when a login URL, username and password are all configured."""
        return bool(self.login_url and self.username and self.password)

    def validate(self) -> None:
        """Raise ConfigError if login settings are missing.

        Raises:
            ConfigError: If login URL, username or password is not set.
        """
        missing = [
            name
            for name, value in (
                ("ERP_LOGIN_URL", self.login_url),
                ("ERP_USERNAME", self.username),
                ("ERP_PASSWORD", self.password),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing ERP settings: {', '.join(missing)}")

    @property
    def token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.token_lifetime_seconds)

    @property
    def refresh_interval(self) -> timedelta:
        """Age after which a stored cookie is replaced (strictly below lifetime)."""
        return timedelta(seconds=self.token_lifetime_seconds * self.refresh_ratio)

    def require_url(self, attr: str) -> str:
        """Return a configured endpoint URL or raise ConfigError.

        Args:
            attr: Attribute name, e.g. ``"closing_report_url"``.

        Returns:
            The URL string.

        Raises:
            ConfigError: If the URL is not configured.
        """
        value = getattr(self, attr, None)
        if not value:
            env_name = URL_SETTINGS.get(attr, (attr.upper(), ""))[0]
            raise ConfigError(f"{env_name} (or ERP_BASE_URL) is not configured")
        return str(value)
