"""Application configuration using Pydantic settings."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    log_level: str = "INFO"

    # ==========================================================================
    # Match Scorer Weights (must sum to 1.0)
    # ==========================================================================
    match_weight_name: float = 0.40
    match_weight_brand: float = 0.25
    match_weight_size: float = 0.20
    match_weight_category: float = 0.15

    # Neutral score when an attribute is missing on either side
    match_neutral_score: float = 0.5
    size_tolerance: float = 0.05  # Sizes within 5% of their mean are identical

    # ==========================================================================
    # Match Classifier Thresholds
    # ==========================================================================
    auto_match_threshold: float = 0.85  # score >= this -> auto_matched
    review_threshold: float = 0.60  # score >= this -> pending

    # Batch matcher
    batch_min_score: float = 0.5
    batch_top_n: int = 5

    # Single-pass matcher (manual single-product check)
    legacy_min_score: float = 0.3
    auto_approval_threshold: float = 0.85  # strict: score > this AND brand/size evidence

    # ==========================================================================
    # ETL Settings
    # ==========================================================================
    monitoring_min_signature_columns: int = 3  # out of 4 monitoring markers
    own_site_domain: str = "spiritsandwine.lv"  # skipped in competitor columns

    # ==========================================================================
    # Price Reconciliation Settings
    # ==========================================================================
    # Drop larger than this fraction of the regular price is treated as a promotion
    promo_threshold: Decimal = Decimal("0.20")
    # Price deltas below this are floating-point noise, not a change
    negligible_price_delta: Decimal = Decimal("0.005")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
