"""
Warehouse Analytics Engine
Centralized Configuration Management

Pydantic settings with environment variable support for the report
parameters: reference date, segmentation thresholds and ranking size.
"""

from datetime import date
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SegmentationSettings(BaseSettings):
    """Customer and product segmentation thresholds"""
    
    model_config = SettingsConfigDict(env_prefix="SEGMENT_")
    
    vip_min_lifespan_months: int = Field(default=12, ge=0, description="Minimum lifespan for VIP/Regular customers")
    vip_min_sales: float = Field(default=5000, ge=0, description="Spending above which an established customer is VIP")
    high_performer_min_sales: float = Field(default=50000, ge=0, description="Revenue above which a product is a high performer")
    mid_range_min_sales: float = Field(default=10000, ge=0, description="Revenue from which a product is mid-range")
    
    @model_validator(mode="after")
    def validate_product_thresholds(self) -> "SegmentationSettings":
        """Mid-range threshold must not exceed the high-performer threshold"""
        if self.mid_range_min_sales > self.high_performer_min_sales:
            raise ValueError("mid_range_min_sales must not exceed high_performer_min_sales")
        return self


class ReportSettings(BaseSettings):
    """Report Builder Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="REPORT_")
    
    as_of_date: Optional[date] = Field(default=None, description="Reference date for age and recency (defaults to today)")
    top_n: int = Field(default=5, ge=1, description="Default size of top/bottom-N rankings")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="")
    
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")
    
    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format value"""
        if v.lower() not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class Settings(BaseSettings):
    """
    Main Application Settings
    
    Aggregates all configuration sections and provides a single entry point
    for accessing engine configuration.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Application
    app_name: str = Field(default="warehouse-analytics", description="Application name")
    app_env: str = Field(default="development", description="Environment")

    # Subsystem configurations
    segmentation: SegmentationSettings = Field(default_factory=SegmentationSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    
    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()
    
    def resolve_as_of(self, as_of: Optional[date] = None) -> date:
        """Explicit reference date, else the configured one, else today"""
        return as_of or self.report.as_of_date or date.today()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to ensure settings are only loaded once.
    
    Returns:
        Settings: Application settings instance
    """
    return Settings()
