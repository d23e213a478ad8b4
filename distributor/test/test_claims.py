import pytest

from distributor import claims
from distributor.errors import (
    AllocationExceeded,
    AlreadyClaimed,
    ClaimError,
    Ended,
    IndexOutOfRange,
    InvalidProof,
)
from distributor.models import AirdropCampaign

NOW = 1_700_000_000


@pytest.fixture
def campaign(tree, recipients) -> AirdropCampaign:
    return AirdropCampaign(
        campaign_id="test",
        root=tree.root,
        total_allocation=sum(r.amount for r in recipients),
        max_index=len(recipients),
        end_time=NOW + 1000,
    )


def test_claim_marks_index_and_counts(campaign, recipients):
    r = recipients[0]
    claims.try_claim(campaign, *r.args, NOW)

    assert claims.is_claimed(campaign, r.index)
    assert campaign.total_claimed == r.amount
    assert campaign.claims_made == 1


def test_every_recipient_can_claim_once(campaign, recipients):
    for r in recipients:
        claims.try_claim(campaign, *r.args, NOW)

    assert campaign.claims_made == len(recipients)
    assert campaign.total_claimed == campaign.total_allocation

    for r in recipients:
        with pytest.raises(AlreadyClaimed):
            claims.try_claim(campaign, *r.args, NOW)
    assert campaign.claims_made == len(recipients)


def test_claim_at_end_time_is_accepted(campaign, recipients):
    claims.try_claim(campaign, *recipients[0].args, campaign.end_time)


def test_claim_after_end(campaign, recipients):
    with pytest.raises(Ended):
        claims.try_claim(campaign, *recipients[0].args, campaign.end_time + 1)


def test_index_out_of_range(campaign, recipients):
    r = recipients[0]
    with pytest.raises(IndexOutOfRange):
        claims.try_claim(campaign, r.address, r.amount, campaign.max_index, r.proof, NOW)
    with pytest.raises(IndexOutOfRange):
        claims.is_claimed(campaign, campaign.max_index)


def test_allocation_exceeded(tree, recipients):
    campaign = AirdropCampaign(
        campaign_id="short",
        root=tree.root,
        total_allocation=recipients[0].amount + 1,
        max_index=len(recipients),
        end_time=NOW + 1000,
    )
    claims.try_claim(campaign, *recipients[0].args, NOW)
    with pytest.raises(AllocationExceeded):
        claims.try_claim(campaign, *recipients[1].args, NOW)
    assert not claims.is_claimed(campaign, recipients[1].index)


def test_invalid_proof(campaign, recipients):
    r, other = recipients[2], recipients[3]
    with pytest.raises(InvalidProof):
        claims.try_claim(campaign, r.address, r.amount, r.index, other.proof, NOW)
    with pytest.raises(InvalidProof):
        claims.try_claim(campaign, r.address, r.amount + 1, r.index, r.proof, NOW)


def test_failed_claims_leave_no_trace(campaign, recipients):
    before = campaign.model_dump()
    r = recipients[1]
    for args, now in [
        ((r.address, r.amount, r.index, recipients[0].proof), NOW),
        (r.args, campaign.end_time + 1),
        ((r.address, r.amount, 99, r.proof), NOW),
    ]:
        with pytest.raises(ClaimError):
            claims.try_claim(campaign, *args, now)
    assert campaign.model_dump() == before


def test_checks_run_in_order(campaign, recipients):
    r = recipients[0]
    claims.try_claim(campaign, *r.args, NOW)
    # already claimed and past the end: Ended wins
    with pytest.raises(Ended):
        claims.try_claim(campaign, *r.args, campaign.end_time + 1)
    # already claimed with a bad proof: AlreadyClaimed wins
    with pytest.raises(AlreadyClaimed):
        claims.try_claim(campaign, r.address, r.amount, r.index, [], NOW)


def test_check_claim_does_not_mutate(campaign, recipients):
    claims.check_claim(campaign, *recipients[0].args, NOW)
    assert campaign.claims_made == 0
    assert campaign.total_claimed == 0
