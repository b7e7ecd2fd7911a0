"""Comp Calc SDK - Core functionality for compensation projections."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    get_projection_timeout,
    get_tranche_divisor,
    get_live_rates_enabled,
    get_profile_path,
    load_profile,
    save_profile,
    ProfileNotFoundError,
    CompensationConfigError,
    parse_compensation,
    load_compensation_config,
    sample_profile,
    # Profile validation
    validate_profile,
    ProfileValidationResult,
    # XDG paths
    get_cache_path,
    get_data_path,
)

from .schemas import (
    SalaryConfig,
    BonusConfig,
    VestingPattern,
    RSUGrant,
    CompensationConfig,
    YearlyProjection,
    GrantSummary,
    VESTING_PATTERNS,
    COMPANIES,
    CURRENCIES,
    symbol_for_company,
)

from .diagnostics import (
    FallbackEvent,
    ProjectionDiagnostics,
)

from .prices import (
    HistoricalPriceLookup,
    MonthlyPriceHistory,
    StaticPriceHistory,
    NoPriceHistory,
    latest_price,
    import_price_file,
    fetch_price_file,
)

from .rates import (
    CurrencyConverter,
    RateTable,
    LiveRateConverter,
    make_converter,
    ExchangeRateUnavailable,
)

from .rsus import (
    Tranche,
    VestedValue,
    resolve_vests,
    vested_value,
    remaining_value,
    remaining_shares,
    has_grant_vested,
    total_grant_value,
    grant_summary,
)

from .future_grants import (
    AnnualRenewalPolicy,
    DecliningRenewalPolicy,
    NoFutureGrantsPolicy,
    get_policy,
)

from .projection import (
    YearlyProjector,
    ProjectionResult,
    ProjectionSeriesBuilder,
    ProjectionRunner,
    build_series,
    project_year,
    default_year_range,
)

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "get_projection_timeout",
    "get_tranche_divisor",
    "get_live_rates_enabled",
    "get_profile_path",
    "load_profile",
    "save_profile",
    "ProfileNotFoundError",
    "CompensationConfigError",
    "parse_compensation",
    "load_compensation_config",
    "sample_profile",
    "validate_profile",
    "ProfileValidationResult",
    "get_cache_path",
    "get_data_path",
    # Schemas
    "SalaryConfig",
    "BonusConfig",
    "VestingPattern",
    "RSUGrant",
    "CompensationConfig",
    "YearlyProjection",
    "GrantSummary",
    "VESTING_PATTERNS",
    "COMPANIES",
    "CURRENCIES",
    "symbol_for_company",
    # Diagnostics
    "FallbackEvent",
    "ProjectionDiagnostics",
    # Collaborators
    "HistoricalPriceLookup",
    "MonthlyPriceHistory",
    "StaticPriceHistory",
    "NoPriceHistory",
    "latest_price",
    "import_price_file",
    "fetch_price_file",
    "CurrencyConverter",
    "RateTable",
    "LiveRateConverter",
    "make_converter",
    "ExchangeRateUnavailable",
    # Vesting
    "Tranche",
    "VestedValue",
    "resolve_vests",
    "vested_value",
    "remaining_value",
    "remaining_shares",
    "has_grant_vested",
    "total_grant_value",
    "grant_summary",
    # Future grants
    "AnnualRenewalPolicy",
    "DecliningRenewalPolicy",
    "NoFutureGrantsPolicy",
    "get_policy",
    # Projection
    "YearlyProjector",
    "ProjectionResult",
    "ProjectionSeriesBuilder",
    "ProjectionRunner",
    "build_series",
    "project_year",
    "default_year_range",
]
