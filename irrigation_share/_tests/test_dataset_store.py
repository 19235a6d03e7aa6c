"""
Unit tests for dataset store actions.

Tests:
1. Actions return new snapshots and never mutate the input
2. Farmer removal is refused while referenced
3. Removing a supply point unassigns its sprinklers
4. Share recalculation keeps manual overrides by default

Run with: python -m pytest irrigation_share/_tests/test_dataset_store.py -v
"""

import re

import pytest

from irrigation_share.config_types import AppConfig, ShareConfig
from irrigation_share.dataset_store import (
    DEFAULT_FARMER_NAME,
    add_farmer,
    create_id,
    empty_dataset,
    recalculate_farmer_shares,
    remove_farmer,
    remove_parcel,
    remove_sprinkler,
    remove_supply_point,
    reset_dataset,
    update_farmer,
    upsert_parcel,
    upsert_sprinkler,
    upsert_supply_point,
)
from irrigation_share.models import (
    DEFAULT_MAP_VIEW,
    Dataset,
    Farmer,
    FarmerShare,
    Parcel,
    Sprinkler,
    SupplyPoint,
)


class TestSnapshotLifecycle:
    def test_create_id_format(self):
        new_id = create_id("far")
        assert re.fullmatch(r"far-[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", new_id)
        assert create_id("far") != new_id

    def test_empty_dataset(self):
        dataset = empty_dataset()
        assert dataset.map_view == DEFAULT_MAP_VIEW
        assert dataset.farmers == ()
        assert dataset.parcels == ()

    def test_reset_drops_everything(self, two_faucet_dataset):
        reset = reset_dataset(two_faucet_dataset)
        assert reset == empty_dataset()
        assert len(two_faucet_dataset.farmers) == 3


class TestFarmerActions:
    def test_add_farmer(self):
        dataset, farmer = add_farmer(empty_dataset())
        assert farmer.name == DEFAULT_FARMER_NAME
        assert farmer.id.startswith("far-")
        assert dataset.farmers == (farmer,)

    def test_update_farmer(self, two_faucet_dataset):
        updated = update_farmer(two_faucet_dataset, "far-bob", name="Robert", notes="north")
        assert updated.farmer("far-bob") == Farmer("far-bob", "Robert", "north")
        assert two_faucet_dataset.farmer("far-bob").name == "Bob"

    def test_update_farmer_cannot_change_id(self, two_faucet_dataset):
        with pytest.raises(ValueError):
            update_farmer(two_faucet_dataset, "far-bob", id="far-x")

    def test_remove_referenced_by_parcel_is_refused(self, two_faucet_dataset):
        dataset, removed = remove_farmer(two_faucet_dataset, "far-alice")
        assert removed is False
        assert dataset is two_faucet_dataset

    def test_remove_referenced_by_share_is_refused(self):
        sp = SupplyPoint(
            id="sp-1", name="A", location=(0, 0), farmer_shares=(FarmerShare("f1", 1.0),)
        )
        dataset = Dataset(farmers=(Farmer("f1", "One"),), supply_points=(sp,))
        _, removed = remove_farmer(dataset, "f1")
        assert removed is False

    def test_remove_unreferenced_farmer(self):
        dataset, farmer = add_farmer(empty_dataset(), "Dana")
        dataset, removed = remove_farmer(dataset, farmer.id)
        assert removed is True
        assert dataset.farmers == ()


class TestEntityActions:
    def test_upsert_replaces_in_place(self, two_faucet_dataset):
        moved = Sprinkler(id="spr-1", name="S1 moved", location=(125.3, 24.8), supply_point_id="sp-a")
        dataset = upsert_sprinkler(two_faucet_dataset, moved)
        assert [s.id for s in dataset.sprinklers] == ["spr-1", "spr-2", "spr-3"]
        assert dataset.sprinklers[0].name == "S1 moved"

    def test_upsert_appends_new(self, two_faucet_dataset, make_square):
        parcel = Parcel(id="par-9", name="new", geometry=make_square(0, 0, 5))
        dataset = upsert_parcel(two_faucet_dataset, parcel)
        assert dataset.parcels[-1] is parcel
        assert len(two_faucet_dataset.parcels) == 4

    def test_remove_supply_point_unassigns_sprinklers(self, two_faucet_dataset):
        dataset = remove_supply_point(two_faucet_dataset, "sp-a")
        assert dataset.supply_point("sp-a") is None
        by_id = {s.id: s for s in dataset.sprinklers}
        assert by_id["spr-1"].supply_point_id is None
        assert by_id["spr-2"].supply_point_id == "sp-b"

    def test_remove_sprinkler_and_parcel(self, two_faucet_dataset):
        dataset = remove_sprinkler(two_faucet_dataset, "spr-3")
        dataset = remove_parcel(dataset, "par-4")
        assert [s.id for s in dataset.sprinklers] == ["spr-1", "spr-2"]
        assert [p.id for p in dataset.parcels] == ["par-1", "par-2", "par-3"]


class TestRecalculateShares:
    @pytest.fixture
    def with_manual_share(self, two_faucet_dataset):
        sp = two_faucet_dataset.supply_point("sp-a").with_shares(
            [FarmerShare("far-alice", 0.9, 0.9), FarmerShare("far-dave", 0.1, 0.1)]
        )
        return upsert_supply_point(two_faucet_dataset, sp)

    def test_computed_shares_written(self, two_faucet_dataset):
        dataset = recalculate_farmer_shares(two_faucet_dataset)
        sp_b = dataset.supply_point("sp-b")
        assert sp_b.farmer_shares == (FarmerShare("far-carol", 1.0, 1.0),)
        sp_a = dataset.supply_point("sp-a")
        assert {s.farmer_id for s in sp_a.farmer_shares} == {"far-alice", "far-bob"}
        assert sum(s.share for s in sp_a.farmer_shares) == pytest.approx(1.0, abs=1e-6)

    def test_manual_share_is_kept_by_default(self, with_manual_share):
        dataset = recalculate_farmer_shares(with_manual_share)
        shares = {s.farmer_id: s for s in dataset.supply_point("sp-a").farmer_shares}
        assert shares["far-alice"].share == 0.9
        assert shares["far-alice"].computed_share == pytest.approx(0.5, abs=0.01)
        assert shares["far-bob"].share == shares["far-bob"].computed_share
        # Not covered by any footprint: kept untouched
        assert shares["far-dave"] == FarmerShare("far-dave", 0.1, 0.1)

    def test_overwrite_replaces_manual_shares(self, with_manual_share):
        dataset = recalculate_farmer_shares(with_manual_share, overwrite_recorded=True)
        shares = dataset.supply_point("sp-a").farmer_shares
        assert {s.farmer_id for s in shares} == {"far-alice", "far-bob"}
        for s in shares:
            assert s.share == s.computed_share

    def test_overwrite_follows_config(self, with_manual_share):
        config = AppConfig(shares=ShareConfig(overwrite_recorded=True))
        dataset = recalculate_farmer_shares(with_manual_share, config)
        assert dataset.supply_point("sp-a").share_for("far-dave") is None

    def test_supply_point_without_footprint_is_untouched(self, two_faucet_dataset):
        sp = SupplyPoint(
            id="sp-c", name="C", location=(0, 0), farmer_shares=(FarmerShare("far-bob", 1.0),)
        )
        dataset = upsert_supply_point(two_faucet_dataset, sp)
        recalculated = recalculate_farmer_shares(dataset)
        assert recalculated.supply_point("sp-c") == sp

    def test_input_snapshot_is_not_mutated(self, with_manual_share):
        before = with_manual_share.supply_point("sp-a")
        recalculate_farmer_shares(with_manual_share)
        assert with_manual_share.supply_point("sp-a") == before
