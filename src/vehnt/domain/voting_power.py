from __future__ import annotations

from vehnt.domain.errors import FailedVotingPowerCalculationError
from vehnt.domain.lockup import LockupKind, LockupView, VotingMintConfig
from vehnt.domain.numeric import U64_MAX


def calculate_voting_power(
    lockup: LockupView,
    mint_config: VotingMintConfig,
    amount_deposited_native: int,
    amount_initially_locked_native: int,
    now: int,
) -> int:
    """Current vote weight of one deposit: baseline weight plus the locked bonus.

    Unlocked deposits earn nothing when the mint requires a minimum lockup saturation.
    """
    if mint_config.min_required_lockup_saturation_secs > 0 and lockup.kind == LockupKind.NONE:
        return 0

    baseline = mint_config.baseline_vote_weight(amount_deposited_native)
    min_locked = mint_config.min_required_lockup_vote_weight(amount_initially_locked_native)
    max_locked = mint_config.max_extra_lockup_vote_weight(amount_initially_locked_native)

    locked = lockup.voting_power_locked(
        now,
        min_locked,
        max_locked,
        mint_config.lockup_saturation_secs,
        mint_config.min_required_lockup_saturation_secs,
    )
    if locked > max_locked:
        raise FailedVotingPowerCalculationError(
            "locked vote weight exceeds max extra lockup weight",
            locked_vote_weight=locked,
            max_locked_vote_weight=max_locked,
        )

    total = baseline + locked
    if total > U64_MAX:
        raise FailedVotingPowerCalculationError(
            "voting power overflows u64",
            baseline_vote_weight=baseline,
            locked_vote_weight=locked,
        )
    return total
