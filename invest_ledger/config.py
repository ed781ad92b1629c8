"""Configuration management for invest-ledger."""

from dataclasses import dataclass, field
from datetime import timedelta, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from invest_ledger.exceptions import ConfigurationError


@dataclass
class LedgerConfig:
    """Ledger, yield and withdrawal rules."""

    monthly_rate: Decimal = Decimal("0.00835")
    lock_days: int = 95
    withdrawal_window_last_day: int = 5
    utc_offset_hours: int = -3  # Brasilia, no DST since 2019
    lock_timeout_seconds: float = 5.0
    lock_retries: int = 3
    default_page_size: int = 10
    max_page_size: int = 100
    max_simulation_months: int = 600

    @property
    def local_timezone(self) -> timezone:
        """Fixed-offset timezone used for calendar rules."""
        return timezone(timedelta(hours=self.utc_offset_hours))

    def validate(self) -> None:
        """Raise ConfigurationError when a rule is out of range."""
        if self.monthly_rate < 0:
            raise ConfigurationError("monthly_rate must be non-negative")
        if self.lock_days < 0:
            raise ConfigurationError("lock_days must be non-negative")
        if not 1 <= self.withdrawal_window_last_day <= 28:
            raise ConfigurationError("withdrawal_window_last_day must be between 1 and 28")
        if not -12 <= self.utc_offset_hours <= 14:
            raise ConfigurationError("utc_offset_hours must be between -12 and 14")
        if self.lock_timeout_seconds <= 0:
            raise ConfigurationError("lock_timeout_seconds must be positive")
        if self.lock_retries < 0:
            raise ConfigurationError("lock_retries must be non-negative")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ConfigurationError("default_page_size must be between 1 and max_page_size")
        if self.max_simulation_months < 1:
            raise ConfigurationError("max_simulation_months must be positive")


@dataclass
class PixConfig:
    """Merchant data and deposit amounts for PIX charges."""

    pix_key: str = "05f6ace9-d21c-43f2-8fb9-40e7da3009a8"
    merchant_name: str = "InvistaPRO"
    merchant_city: str = "Araras"
    charge_ttl_minutes: int = 30
    base_amounts: list[Decimal] = field(
        default_factory=lambda: [Decimal("130"), Decimal("350"), Decimal("825"), Decimal("1000")]
    )
    incremental_start: Decimal = Decimal("10000")
    incremental_stop: Decimal = Decimal("100000")
    incremental_step: Decimal = Decimal("10000")

    def allowed_amounts(self) -> list[Decimal]:
        """Return the enumerated deposit amounts in ascending order."""
        amounts = {amount.quantize(Decimal("0.01")) for amount in self.base_amounts}
        if self.incremental_step > 0:
            value = self.incremental_start
            while value <= self.incremental_stop:
                amounts.add(value.quantize(Decimal("0.01")))
                value += self.incremental_step
        return sorted(amounts)

    def validate(self) -> None:
        """Raise ConfigurationError when merchant data is unusable."""
        if not self.pix_key:
            raise ConfigurationError("pix_key is required")
        if not self.merchant_name or len(self.merchant_name) > 25:
            raise ConfigurationError("merchant_name must have 1 to 25 characters")
        if not self.merchant_city or len(self.merchant_city) > 15:
            raise ConfigurationError("merchant_city must have 1 to 15 characters")
        if self.charge_ttl_minutes <= 0:
            raise ConfigurationError("charge_ttl_minutes must be positive")
        if any(amount <= 0 for amount in self.allowed_amounts()):
            raise ConfigurationError("deposit amounts must be positive")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    movements_topic: str = "invest.movements"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "invest_ledger"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """Statement export configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class AppConfig:
    """Main configuration for invest-ledger."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    pix: PixConfig = field(default_factory=PixConfig)
    kafka: KafkaConfig | None = None
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    def validate(self) -> None:
        """Validate every section."""
        self.ledger.validate()
        self.pix.validate()
        if self.log_format not in ("standard", "json"):
            raise ConfigurationError(f"Unknown log format: {self.log_format}")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create config from environment variables."""
        import os

        try:
            ledger = LedgerConfig(
                monthly_rate=Decimal(os.getenv("LEDGER_MONTHLY_RATE", "0.00835")),
                lock_days=int(os.getenv("LEDGER_LOCK_DAYS", "95")),
                withdrawal_window_last_day=int(os.getenv("LEDGER_WINDOW_LAST_DAY", "5")),
                utc_offset_hours=int(os.getenv("LEDGER_UTC_OFFSET_HOURS", "-3")),
                lock_timeout_seconds=float(os.getenv("LEDGER_LOCK_TIMEOUT", "5")),
                lock_retries=int(os.getenv("LEDGER_LOCK_RETRIES", "3")),
            )

            pix = PixConfig(
                pix_key=os.getenv("PIX_KEY", PixConfig.pix_key),
                merchant_name=os.getenv("PIX_MERCHANT_NAME", PixConfig.merchant_name),
                merchant_city=os.getenv("PIX_MERCHANT_CITY", PixConfig.merchant_city),
                charge_ttl_minutes=int(os.getenv("PIX_CHARGE_TTL_MINUTES", "30")),
            )

            kafka_servers = os.getenv("KAFKA_BOOTSTRAP_SERVERS")
            kafka = None
            if kafka_servers:
                kafka = KafkaConfig(
                    bootstrap_servers=kafka_servers,
                    acks=os.getenv("KAFKA_ACKS", "all"),
                    movements_topic=os.getenv("KAFKA_MOVEMENTS_TOPIC", "invest.movements"),
                )

            postgres = PostgresConfig(
                host=os.getenv("POSTGRES_HOST", "localhost"),
                port=int(os.getenv("POSTGRES_PORT", "5432")),
                database=os.getenv("POSTGRES_DB", "invest_ledger"),
                user=os.getenv("POSTGRES_USER", "postgres"),
                password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            )

            output = OutputConfig(
                json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
                pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
            )

            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except (ValueError, InvalidOperation) as exc:
            raise ConfigurationError(f"Invalid environment configuration: {exc}") from exc

        config = cls(
            ledger=ledger,
            pix=pix,
            kafka=kafka,
            postgres=postgres,
            output=output,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
        config.validate()
        return config
