"""Centralized configuration validation for citysim."""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any, Mapping

from citysim.typing import TECH_EFFECT_KINDS


class ConfigValidator:
    """
    Centralized validation for simulation configuration.

    All validation happens once at Simulation.init() to ensure:
    - Type correctness
    - Valid parameter ranges
    - Relationship constraints between parameters
    - Well-formed catalog sections
    """

    # Valid log levels for logging configuration
    VALID_LOG_LEVELS = {"DEEP", "DEEP_DEBUG", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    INT_PARAMS = (
        "days_per_month",
        "months_per_year",
        "history_days",
        "initial_housing_capacity",
        "inflation_history_size",
        "transaction_history_size",
        "tax_history_size",
        "seed",
    )

    FLOAT_PARAMS = (
        "time_scale",
        "day_length",
        "trend_threshold",
        "upgrade_cost_factor",
        "upgrade_efficiency_step",
        "upgrade_output_multiplier",
        "research_rate",
        "research_retry_bonus",
        "happiness_interval",
        "experience_interval",
        "experience_rate",
        "class_check_interval",
        "migration_interval",
        "market_blend",
        "overall_blend",
        "market_impact_scale",
        "loss_threshold",
        "demotion_threshold",
        "demotion_happiness",
        "overcrowding_threshold",
        "overcrowding_demotion_bonus",
        "mobility_threshold_lower",
        "mobility_threshold_middle",
        "immigration_threshold",
        "immigration_capacity_ratio",
        "max_loss_ratio",
        "max_demotion_ratio",
        "max_mobility_ratio",
        "max_immigration_ratio",
        "immigrant_happiness",
        "growth_rate",
        "price_fluctuation_interval",
        "consumption_interval",
        "random_event_interval",
        "random_event_chance",
        "market_inventory_init",
        "market_capacity",
        "bulk_reference_amount",
        "tax_rate",
    )

    @staticmethod
    def validate_config(cfg: dict[str, Any]) -> None:
        """
        Validate all configuration parameters.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ValueError
            If any validation check fails.
        """
        ConfigValidator._validate_types(cfg)
        ConfigValidator._validate_ranges(cfg)
        ConfigValidator._validate_relationships(cfg)

        if "logging" in cfg:
            ConfigValidator._validate_logging(cfg["logging"])

        if "catalog" in cfg:
            ConfigValidator._validate_catalog(cfg["catalog"])

    @staticmethod
    def _validate_types(cfg: dict[str, Any]) -> None:
        """
        Ensure correct types for configuration parameters.

        Raises
        ------
        ValueError
            If any parameter has incorrect type.
        """
        for key in ConfigValidator.INT_PARAMS:
            if key not in cfg:
                continue
            val = cfg[key]
            if val is not None and (not isinstance(val, int) or isinstance(val, bool)):
                raise ValueError(
                    f"Config parameter '{key}' must be int, got {type(val).__name__}"
                )

        # accept int or float
        for key in ConfigValidator.FLOAT_PARAMS:
            if key not in cfg:
                continue
            val = cfg[key]
            if not isinstance(val, (int, float)) or isinstance(val, bool):
                raise ValueError(
                    f"Config parameter '{key}' must be float, got {type(val).__name__}"
                )

        if "paused" in cfg and not isinstance(cfg["paused"], bool):
            raise ValueError(
                f"Config parameter 'paused' must be bool, "
                f"got {type(cfg['paused']).__name__}"
            )

        if "pipeline_path" in cfg:
            val = cfg["pipeline_path"]
            if val is not None and not isinstance(val, str):
                raise ValueError(
                    f"Config parameter 'pipeline_path' must be str or None, "
                    f"got {type(val).__name__}"
                )

        if "tier_caps" in cfg:
            caps = cfg["tier_caps"]
            if not isinstance(caps, Mapping):
                raise ValueError(
                    f"Config parameter 'tier_caps' must be dict, "
                    f"got {type(caps).__name__}"
                )
            for tier, cap in caps.items():
                if int(tier) not in (1, 2, 3, 4):
                    raise ValueError(f"tier_caps key must be 1..4, got {tier!r}")
                if not isinstance(cap, (int, float)) or cap <= 0:
                    raise ValueError(
                        f"tier_caps[{tier}] must be a positive number, got {cap!r}"
                    )

    @staticmethod
    def _validate_ranges(cfg: dict[str, Any]) -> None:
        """
        Ensure parameters are in valid ranges.

        Raises
        ------
        ValueError
            If any parameter is out of valid range.
        """
        # (min_val, max_val); None means unbounded
        constraints = {
            "time_scale": (0.0, None),
            "day_length": (1.0, None),
            "days_per_month": (1, None),
            "months_per_year": (1, None),
            "history_days": (1, None),
            "trend_threshold": (0.0, 1.0),
            "upgrade_cost_factor": (0.0, None),
            "upgrade_efficiency_step": (0.0, None),
            "upgrade_output_multiplier": (1.0, None),
            "research_rate": (0.0, None),
            "research_retry_bonus": (0.0, 1.0),
            "initial_housing_capacity": (0, None),
            # intervals (strictly meaningful only when positive)
            "happiness_interval": (1.0, None),
            "experience_interval": (1.0, None),
            "class_check_interval": (1.0, None),
            "migration_interval": (1.0, None),
            "price_fluctuation_interval": (1.0, None),
            "consumption_interval": (1.0, None),
            "random_event_interval": (1.0, None),
            "experience_rate": (0.0, None),
            # smoothing rates
            "market_blend": (0.0, 1.0),
            "overall_blend": (0.0, 1.0),
            "market_impact_scale": (0.0, None),
            # happiness thresholds
            "loss_threshold": (0.0, 100.0),
            "demotion_threshold": (0.0, 100.0),
            "demotion_happiness": (0.0, 100.0),
            "mobility_threshold_lower": (0.0, 100.0),
            "mobility_threshold_middle": (0.0, 100.0),
            "immigration_threshold": (0.0, 100.0),
            "immigrant_happiness": (0.0, 100.0),
            # ratios
            "overcrowding_threshold": (0.0, 1.0),
            "overcrowding_demotion_bonus": (0.0, 1.0),
            "immigration_capacity_ratio": (0.0, 1.0),
            "max_loss_ratio": (0.0, 1.0),
            "max_demotion_ratio": (0.0, 1.0),
            "max_mobility_ratio": (0.0, 1.0),
            "max_immigration_ratio": (0.0, 1.0),
            "random_event_chance": (0.0, 1.0),
            "growth_rate": (0.0, 1.0),
            "tax_rate": (0.0, 1.0),
            # market
            "market_inventory_init": (0.0, None),
            "market_capacity": (1.0, None),
            "bulk_reference_amount": (1.0, None),
            "inflation_history_size": (1, None),
            "transaction_history_size": (1, None),
            "tax_history_size": (1, None),
            "seed": (0, None),
        }

        for key, (min_val, max_val) in constraints.items():
            if key not in cfg:
                continue

            val = cfg[key]

            # Skip None values for optional parameters
            if val is None:
                continue

            if min_val is not None and val < min_val:
                raise ValueError(
                    f"Config parameter '{key}' must be >= {min_val}, got {val}"
                )

            if max_val is not None and val > max_val:
                raise ValueError(
                    f"Config parameter '{key}' must be <= {max_val}, got {val}"
                )

    @staticmethod
    def _validate_relationships(cfg: dict[str, Any]) -> None:
        """
        Validate cross-parameter constraints (warnings only).

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.
        """
        inv = cfg.get("market_inventory_init", 0.0)
        cap = cfg.get("market_capacity", float("inf"))
        if inv > cap:
            warnings.warn(
                f"market_inventory_init ({inv}) > market_capacity ({cap}). "
                "Initial inventory will be clamped to capacity.",
                UserWarning,
                stacklevel=3,
            )

        exp = cfg.get("experience_interval", 0.0)
        check = cfg.get("class_check_interval", float("inf"))
        if exp > check:
            warnings.warn(
                f"experience_interval ({exp}) > class_check_interval ({check}). "
                "Promotion checks will often see no new experience.",
                UserWarning,
                stacklevel=3,
            )

        loss = cfg.get("loss_threshold", 0.0)
        demotion = cfg.get("demotion_threshold", 100.0)
        if loss > demotion:
            warnings.warn(
                f"loss_threshold ({loss}) > demotion_threshold ({demotion}). "
                "Class demotion will never trigger.",
                UserWarning,
                stacklevel=3,
            )

    @staticmethod
    def _validate_logging(log_config: dict[str, Any]) -> None:
        """
        Validate logging configuration.

        Parameters
        ----------
        log_config : dict
            Logging configuration dictionary with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - events: dict[str, str] (per-event overrides)

        Raises
        ------
        ValueError
            If logging configuration is invalid.
        """
        if not isinstance(log_config, Mapping):
            raise ValueError(
                f"Logging config must be dict, got {type(log_config).__name__}"
            )

        if "default_level" in log_config:
            level = log_config["default_level"]
            if not isinstance(level, str):
                raise ValueError(
                    f"Logging default_level must be str, got {type(level).__name__}"
                )

            if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}'. "
                    f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                )

        events = log_config.get("events") or {}
        if not isinstance(events, Mapping):
            raise ValueError(f"Logging events must be dict, got {type(events).__name__}")

        for event_name, level in events.items():
            if not isinstance(event_name, str):
                raise ValueError(
                    f"Event name must be str, got {type(event_name).__name__}"
                )

            if not isinstance(level, str):
                raise ValueError(
                    f"Log level for event '{event_name}' must be str, "
                    f"got {type(level).__name__}"
                )

            if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}' for event '{event_name}'. "
                    f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                )

    @staticmethod
    def _validate_catalog(catalog: Any) -> None:
        """
        Check catalog structure and cross references.

        Raises
        ------
        ValueError
            If a section has the wrong shape or a profession references an
            unknown social class.
        """
        if not isinstance(catalog, Mapping):
            raise ValueError(f"catalog must be dict, got {type(catalog).__name__}")

        for section in (
            "resources",
            "professions",
            "building_types",
            "goods",
            "technologies",
        ):
            val = catalog.get(section, {})
            if not isinstance(val, Mapping):
                raise ValueError(
                    f"catalog.{section} must be dict, got {type(val).__name__}"
                )

        for rid, spec in catalog.get("resources", {}).items():
            tier = spec.get("tier")
            if tier not in (1, 2, 3, 4):
                raise ValueError(f"Resource '{rid}' tier must be 1..4, got {tier!r}")

        classes = catalog.get("social_classes", {})
        for cls_name, spec in classes.items():
            weights = spec.get("weights", {})
            total = sum(weights.values())
            if abs(total - 1.0) > 1e-6:
                raise ValueError(
                    f"Happiness weights of class '{cls_name}' must sum to 1, "
                    f"got {total}"
                )

        for pid, spec in catalog.get("professions", {}).items():
            cls_name = spec.get("social_class")
            if classes and cls_name not in classes:
                raise ValueError(
                    f"Profession '{pid}' references unknown social class "
                    f"'{cls_name}'"
                )
            if spec.get("count", 0) < 0:
                raise ValueError(f"Profession '{pid}' count must be >= 0")

        techs = catalog.get("technologies", {})
        for tid, spec in techs.items():
            for req in spec.get("prerequisites", ()):
                if req not in techs:
                    raise ValueError(
                        f"Technology '{tid}' requires unknown technology '{req}'"
                    )
            rate = spec.get("success_rate", 1.0)
            if not 0.0 < rate <= 1.0:
                raise ValueError(
                    f"Technology '{tid}' success_rate must be in (0, 1], got {rate}"
                )
            for kind in (spec.get("effects") or {}):
                if kind not in TECH_EFFECT_KINDS:
                    raise ValueError(
                        f"Technology '{tid}' has unknown effect '{kind}'. "
                        f"Valid: {', '.join(TECH_EFFECT_KINDS)}"
                    )

    @staticmethod
    def validate_pipeline_path(pipeline_path: str) -> None:
        """
        Validate pipeline path exists and is readable.

        Raises
        ------
        ValueError
            If path does not exist or is not a file.
        """
        path = Path(pipeline_path)

        if not path.exists():
            raise ValueError(f"Pipeline path '{pipeline_path}' does not exist")

        if not path.is_file():
            raise ValueError(f"Pipeline path '{pipeline_path}' is not a file")

        if path.suffix not in (".yml", ".yaml"):
            warnings.warn(
                f"Pipeline path '{pipeline_path}' does not have .yml/.yaml extension",
                UserWarning,
                stacklevel=2,
            )
