"""Future grant policies.

Projections past the current year assume new RSU grants keep arriving.
A policy turns the existing grants into the synthetic grants awarded in
current_year+1 .. target_year. Synthetic grants are always valued at the
current stock price.
"""

from typing import List, Optional, Protocol, Sequence

from .schemas import RSUGrant


def latest_grant(grants: Sequence[RSUGrant]) -> Optional[RSUGrant]:
    """Grant with the latest grant date (first one wins a tie)."""
    latest = None
    for grant in grants:
        if latest is None or grant.grant_date > latest.grant_date:
            latest = grant
    return latest


class FutureGrantPolicy(Protocol):
    """Synthetic grants awarded after current_year, up to and including target_year."""

    def future_grants(self, grants: Sequence[RSUGrant], current_year: int,
                      target_year: int) -> List[RSUGrant]:
        ...


class AnnualRenewalPolicy:
    """A grant identical to the most recent one arrives every year.

    Same month/day, share count and vesting pattern.
    """

    name = "annual_renewal"

    def future_grants(self, grants: Sequence[RSUGrant], current_year: int,
                      target_year: int) -> List[RSUGrant]:
        template = latest_grant(grants)
        if template is None:
            return []
        return [
            template.renewed(grant_year)
            for grant_year in range(current_year + 1, target_year + 1)
        ]


class DecliningRenewalPolicy:
    """Like annual renewal, but each year's grant is `factor` times the previous one."""

    name = "declining_renewal"

    def __init__(self, factor: float = 0.9):
        if factor < 0:
            raise ValueError(f"factor must be non-negative, got {factor}")
        self.factor = factor

    def future_grants(self, grants: Sequence[RSUGrant], current_year: int,
                      target_year: int) -> List[RSUGrant]:
        template = latest_grant(grants)
        if template is None:
            return []
        result = []
        shares = template.total_shares
        for grant_year in range(current_year + 1, target_year + 1):
            shares *= self.factor
            result.append(template.renewed(grant_year, total_shares=shares))
        return result


class NoFutureGrantsPolicy:
    """Only grants already awarded count."""

    name = "none"

    def future_grants(self, grants: Sequence[RSUGrant], current_year: int,
                      target_year: int) -> List[RSUGrant]:
        return []


POLICIES = {
    AnnualRenewalPolicy.name: AnnualRenewalPolicy,
    DecliningRenewalPolicy.name: DecliningRenewalPolicy,
    NoFutureGrantsPolicy.name: NoFutureGrantsPolicy,
}


def get_policy(name: str, **kwargs) -> FutureGrantPolicy:
    """Instantiate a policy by name.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return POLICIES[name](**kwargs)
    except KeyError:
        raise ValueError(f"Unknown future grant policy '{name}'. Choose from {sorted(POLICIES)}")
