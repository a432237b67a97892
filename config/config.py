"""
Configuration for the pharmacy expiry automation engine.
Defines the scheduling, window, identity and connector settings in a type-safe way,
with environment overrides read through utils.env.
"""

from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from models.automation import DailyTrigger
from models.batch import FLASH_SALE_MAX_DAYS, ROTATION_MAX_DAYS, ROTATION_MIN_DAYS
from utils.env import env_float, env_int, env_str, load_project_dotenv


@dataclass
class ExpiryAutomationConfig:
    # Scheduling; the timezone is process-wide and fixed for the process lifetime
    timezone: str = "Asia/Colombo"
    flash_sale_time: str = "01:00"
    rotation_time: str = "02:00"
    misfire_grace_seconds: int = 60

    # Expiry windows in whole days, inclusive
    flash_sale_max_days: int = FLASH_SALE_MAX_DAYS
    rotation_min_days: int = ROTATION_MIN_DAYS
    rotation_max_days: int = ROTATION_MAX_DAYS

    # Identities used on outbound messages
    pharmacy_id: str = "PHARMACY_001"
    pharmacist_id: str = "PHARMACIST_001"

    # Resource bounds
    call_timeout_seconds: float = 10.0
    run_deadline_seconds: float = 900.0

    # Outbound channels; empty URL means the logging stand-in is used
    whatsapp_api_url: str = ""
    whatsapp_api_token: str = ""
    map_api_url: str = ""
    map_api_token: str = ""

    # Inventory store; empty URL means the in-memory store is used
    supabase_url: str = ""
    supabase_service_key: str = ""
    medicine_batches_table: str = "medicine_batches"

    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError for settings the engine cannot run with."""
        # Each accessor raises ValueError on a malformed value
        _ = (self.tzinfo, self.flash_sale_trigger, self.rotation_trigger)
        if self.flash_sale_max_days < 0:
            raise ValueError("flash_sale_max_days must be >= 0")
        if self.rotation_min_days > self.rotation_max_days:
            raise ValueError("rotation_min_days must not exceed rotation_max_days")
        if self.rotation_min_days <= self.flash_sale_max_days:
            raise ValueError(
                f"Rotation window [{self.rotation_min_days}, {self.rotation_max_days}] overlaps "
                f"flash-sale window [0, {self.flash_sale_max_days}]"
            )
        if self.call_timeout_seconds <= 0:
            raise ValueError("call_timeout_seconds must be positive")
        if self.run_deadline_seconds <= 0:
            raise ValueError("run_deadline_seconds must be positive")
        if self.misfire_grace_seconds < 1:
            raise ValueError("misfire_grace_seconds must be >= 1")

    @property
    def tzinfo(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.timezone!r}") from e

    @property
    def flash_sale_trigger(self) -> DailyTrigger:
        return DailyTrigger.parse(self.flash_sale_time)

    @property
    def rotation_trigger(self) -> DailyTrigger:
        return DailyTrigger.parse(self.rotation_time)

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    @classmethod
    def from_env(cls) -> "ExpiryAutomationConfig":
        """Build a config from the environment (and the project .env, if any)."""
        load_project_dotenv()
        defaults = cls()
        return cls(
            timezone=env_str("EXPIRY_AUTOMATION_TIMEZONE", defaults.timezone),
            flash_sale_time=env_str("FLASH_SALE_TRIGGER_TIME", defaults.flash_sale_time),
            rotation_time=env_str("ROTATION_TRIGGER_TIME", defaults.rotation_time),
            misfire_grace_seconds=env_int(
                "SCHEDULER_MISFIRE_GRACE_SECONDS", defaults.misfire_grace_seconds
            ),
            flash_sale_max_days=env_int("FLASH_SALE_MAX_DAYS", defaults.flash_sale_max_days),
            rotation_min_days=env_int("ROTATION_MIN_DAYS", defaults.rotation_min_days),
            rotation_max_days=env_int("ROTATION_MAX_DAYS", defaults.rotation_max_days),
            pharmacy_id=env_str("PHARMACY_ID", defaults.pharmacy_id),
            pharmacist_id=env_str("PHARMACIST_ID", defaults.pharmacist_id),
            call_timeout_seconds=env_float(
                "NOTIFICATION_CALL_TIMEOUT_SECONDS", defaults.call_timeout_seconds
            ),
            run_deadline_seconds=env_float(
                "AUTOMATION_RUN_DEADLINE_SECONDS", defaults.run_deadline_seconds
            ),
            whatsapp_api_url=env_str("WHATSAPP_API_URL"),
            whatsapp_api_token=env_str("WHATSAPP_API_TOKEN"),
            map_api_url=env_str("MAP_API_URL"),
            map_api_token=env_str("MAP_API_TOKEN"),
            supabase_url=env_str("SUPABASE_URL"),
            supabase_service_key=env_str("SUPABASE_SERVICE_KEY"),
            medicine_batches_table=env_str(
                "MEDICINE_BATCHES_TABLE", defaults.medicine_batches_table
            ),
            log_level=env_str("LOG_LEVEL", defaults.log_level),
        )


# Example usage:
# config = ExpiryAutomationConfig.from_env()
# scheduler = build_expiry_scheduler(config, store, dispatcher)
