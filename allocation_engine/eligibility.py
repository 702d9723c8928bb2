"""
Allocation Engine - Eligibility Rules.

Married applicants aged 21+ may apply for any flat type on offer.
Single applicants aged 35+ may apply for the smallest flat type only.
Everyone else is ineligible.
"""

from typing import Iterable, Optional, Tuple

from .config import EligibilityConfig
from .types import Applicant, FlatType


class EligibilityRules:
    """Pure eligibility checks; no side effects."""

    def __init__(self, config: Optional[EligibilityConfig] = None):
        self._config = config or EligibilityConfig()

    @property
    def config(self) -> EligibilityConfig:
        return self._config

    def is_eligible_for_scheme(self, applicant: Applicant) -> bool:
        """Age check that applies before any flat-type restriction."""
        if applicant.is_married:
            return applicant.age >= self._config.married_min_age
        return applicant.age >= self._config.single_min_age

    def is_eligible(self, applicant: Applicant, flat_type: FlatType) -> bool:
        if not self.is_eligible_for_scheme(applicant):
            return False
        if not applicant.is_married:
            return flat_type == FlatType.smallest()
        return True

    def eligible_flat_types(
        self,
        applicant: Applicant,
        offered: Iterable[FlatType],
    ) -> Tuple[FlatType, ...]:
        """Subset of the offered flat types the applicant may apply for."""
        return tuple(ft for ft in offered if self.is_eligible(applicant, ft))
