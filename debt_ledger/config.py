"""Configuration management for debt-ledger."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from debt_ledger.exceptions import ConfigurationError


@dataclass
class LedgerConfig:
    """Reconciliation settings shared by every ledger service."""

    tolerance: Decimal = Decimal("0.01")
    timezone: str = "Asia/Tashkent"
    recent_payment_days: int = 30

    @property
    def zone(self) -> ZoneInfo:
        """Time zone used to materialise month-anchored due dates."""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown time zone: {self.timezone!r}") from e


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "debt_ledger"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """Output configuration for exported reports."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class DebtLedgerConfig:
    """Main configuration for debt-ledger."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "DebtLedgerConfig":
        """Create config from environment variables."""
        import os

        tolerance_str = os.getenv("LEDGER_TOLERANCE", "0.01")
        try:
            tolerance = Decimal(tolerance_str)
        except InvalidOperation as e:
            raise ConfigurationError(f"LEDGER_TOLERANCE is not a number: {tolerance_str!r}") from e
        if tolerance < 0:
            raise ConfigurationError("LEDGER_TOLERANCE must not be negative")

        ledger = LedgerConfig(
            tolerance=tolerance,
            timezone=os.getenv("LEDGER_TIMEZONE", "Asia/Tashkent"),
            recent_payment_days=int(os.getenv("LEDGER_RECENT_PAYMENT_DAYS", "30")),
        )
        # Fail fast on a bad zone rather than on the first month-scoped query.
        ledger.zone

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "debt_ledger"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            ledger=ledger,
            postgres=postgres,
            output=output,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
