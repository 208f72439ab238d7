"""
Singapore Property Comparison Calculator - Policy

Rate tables injected into the calculators. Defaults come from constants.py;
a YAML policy file can override any of them without touching the maths.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from constants import (
    ABSD_RATES,
    BSD_BRACKETS,
    CONSTRUCTION_STAGES,
    CSC_OFFSET_MONTHS,
    GST_RATE,
    SSD_RATES,
    TOP_CUMULATIVE_PCT,
    UPFRONT_PAYMENT_PCT,
)
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)

POLICY_ENV_VAR = "PROPERTY_CALC_POLICY"


@dataclass
class CalculatorPolicy:
    """Rate tables and schedule used by the calculation engine."""
    bsd_brackets: list = field(default_factory=lambda: list(BSD_BRACKETS))
    absd_rates: dict = field(default_factory=lambda: dict(ABSD_RATES))
    ssd_rates: dict = field(default_factory=lambda: dict(SSD_RATES))
    construction_stages: list = field(default_factory=lambda: list(CONSTRUCTION_STAGES))
    top_cumulative_pct: float = TOP_CUMULATIVE_PCT
    csc_offset_months: int = CSC_OFFSET_MONTHS
    gst_rate: float = GST_RATE

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check the tables are internally consistent. Raises ConfigurationError."""
        if not self.bsd_brackets:
            raise ConfigurationError("bsd_brackets must not be empty")
        for band, _ in self.bsd_brackets[:-1]:
            if not isinstance(band, (int, float)) or band <= 0:
                raise ConfigurationError("only the last BSD bracket may be open-ended")
        for _, rate in self.bsd_brackets:
            if not 0 <= rate <= 1:
                raise ConfigurationError(f"BSD rate {rate} must be a fraction between 0 and 1")

        for citizenship, tiers in self.absd_rates.items():
            if len(tiers) != 3:
                raise ConfigurationError(
                    f"ABSD rates for {citizenship} need exactly 3 tiers (1st, 2nd, 3rd+)"
                )
        if "Foreigner" not in self.absd_rates:
            raise ConfigurationError("ABSD rates must include a 'Foreigner' entry")

        for year, rate in self.ssd_rates.items():
            if int(year) < 1 or not 0 <= rate <= 1:
                raise ConfigurationError(f"invalid SSD rate {rate} for selling year {year}")

        # The first stage must bill beyond the upfront payment
        previous_month, previous_pct = 0, UPFRONT_PAYMENT_PCT
        for name, month, pct in self.construction_stages:
            if month <= previous_month or pct <= previous_pct:
                raise ConfigurationError(
                    f"construction stage '{name}' must come after the previous stage "
                    "in both month and cumulative percentage"
                )
            previous_month, previous_pct = month, pct
        if not previous_pct < self.top_cumulative_pct < 1:
            raise ConfigurationError("TOP cumulative percentage must sit between the last stage and 100%")
        if self.csc_offset_months < 1:
            raise ConfigurationError("CSC offset must be at least one month")
        if not 0 <= self.gst_rate < 1:
            raise ConfigurationError(f"GST rate {self.gst_rate} must be a fraction below 1")

    @classmethod
    def from_dict(cls, data: dict) -> "CalculatorPolicy":
        """
        Build a policy from a parsed YAML mapping.

        Missing keys keep their defaults. Brackets and stages are given as
        lists of mappings so the file stays readable:

            bsd_brackets:
              - {band: 180000, rate: 0.01}
              - {band: null, rate: 0.06}
            construction_stages:
              - {name: Foundation, month: 1, cumulative_pct: 0.30}
        """
        kwargs = {}
        try:
            if "bsd_brackets" in data:
                kwargs["bsd_brackets"] = [
                    (
                        None if item.get("band") is None else float(item["band"]),
                        float(item["rate"]),
                    )
                    for item in data["bsd_brackets"]
                ]
            if "absd_rates" in data:
                kwargs["absd_rates"] = {
                    str(key): tuple(float(r) for r in tiers)
                    for key, tiers in data["absd_rates"].items()
                }
            if "ssd_rates" in data:
                kwargs["ssd_rates"] = {
                    int(year): float(rate) for year, rate in data["ssd_rates"].items()
                }
            if "construction_stages" in data:
                kwargs["construction_stages"] = [
                    (str(item["name"]), int(item["month"]), float(item["cumulative_pct"]))
                    for item in data["construction_stages"]
                ]
            for key, cast in (
                ("top_cumulative_pct", float),
                ("csc_offset_months", int),
                ("gst_rate", float),
            ):
                if key in data:
                    kwargs[key] = cast(data[key])
            return cls(**kwargs)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ConfigurationError(f"malformed policy entry: {exc}") from exc

    @classmethod
    def from_env(cls) -> "CalculatorPolicy":
        """Load the policy named by PROPERTY_CALC_POLICY, or the defaults."""
        path = os.getenv(POLICY_ENV_VAR)
        if path:
            return load_policy(Path(path))
        return cls()


def load_policy(path: Path) -> CalculatorPolicy:
    """Read a YAML policy file. Raises ConfigurationError if missing or invalid."""
    if not path.exists():
        raise ConfigurationError(f"policy file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"could not parse policy file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"policy file {path} must contain a mapping")

    policy = CalculatorPolicy.from_dict(data)
    logger.info("Loaded calculator policy from %s", path)
    return policy


DEFAULT_POLICY = CalculatorPolicy()


def resolve_policy(policy: Optional[CalculatorPolicy]) -> CalculatorPolicy:
    """Return the given policy, or the defaults when none is injected."""
    return policy if policy is not None else DEFAULT_POLICY
