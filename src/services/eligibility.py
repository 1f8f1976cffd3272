from typing import Iterable, Optional

from ..domain.entities import Applicant
from ..domain.enums import FlatType

MARRIED_MIN_AGE = 21
SINGLE_MIN_AGE = 35


class EligibilityRules:
    """Fixed BTO eligibility policy over applicant age and marital status"""

    def is_eligible_for_flat_type(self, applicant: Optional[Applicant], flat_type: FlatType) -> bool:
        if applicant is None or flat_type is None:
            return False

        if applicant.is_married:
            return applicant.age >= MARRIED_MIN_AGE

        # Singles only qualify for the smallest flat type
        return applicant.age >= SINGLE_MIN_AGE and flat_type == FlatType.smallest()

    def eligible_flat_types(
        self,
        applicant: Optional[Applicant],
        offered: Optional[Iterable[FlatType]] = None,
    ) -> list[FlatType]:
        candidates = list(FlatType) if offered is None else list(offered)
        return [ft for ft in candidates if self.is_eligible_for_flat_type(applicant, ft)]

    def is_eligible_for_bto(
        self,
        applicant: Optional[Applicant],
        offered: Optional[Iterable[FlatType]] = None,
    ) -> bool:
        """True when at least one flat type is open to the applicant"""
        return bool(self.eligible_flat_types(applicant, offered))


# Singleton instance
eligibility_rules = EligibilityRules()
