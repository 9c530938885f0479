"""
Unit tests for otsproof.bundle: parsing node responses and refusing to
merge disagreeing metadata.
"""

import copy
from decimal import Decimal

import pydantic
import pytest

from otsproof.bundle import NodeResponse, ShareEntry, collect_key
from otsproof.constants import ORDER, WOTS_LEN
from otsproof.errors import InconsistentMetadataError, ReconstructionError

from conftest import make_ecdsa_responses


@pytest.fixture
def responses(ecdsa_secret):
    responses, _, _ = make_ecdsa_responses(ecdsa_secret)
    return responses


class TestModels:
    def test_share_value_formats(self):
        assert ShareEntry(node_index=1, share_value="0x10").share_value == 16
        assert ShareEntry(node_index=1, share_value="16").share_value == 16
        assert ShareEntry(node_index=1, share_value=16).share_value == 16

    def test_share_node_index_positive(self):
        with pytest.raises(pydantic.ValidationError):
            ShareEntry(node_index=0, share_value=1)

    def test_share_repr_hides_value(self):
        assert "999" not in repr(ShareEntry(node_index=1, share_value=999))

    def test_bad_merkle_root(self, responses):
        raw = copy.deepcopy(responses["node-1"])
        raw["keys_metadata"][0]["merkle_root"] = "0x1234"
        with pytest.raises(pydantic.ValidationError):
            NodeResponse.model_validate(raw)

    def test_bad_address_checksum(self, responses):
        raw = copy.deepcopy(responses["node-1"])
        raw["keys_metadata"][0]["address"] = "0x5AAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
        with pytest.raises(pydantic.ValidationError):
            NodeResponse.model_validate(raw)

    def test_extra_fields_ignored(self, responses):
        raw = copy.deepcopy(responses["node-1"])
        raw["status"] = "ok"
        assert NodeResponse.model_validate(raw).key(0) is not None

    def test_lookup_missing_key(self, responses):
        resp = NodeResponse.model_validate(responses["node-1"])
        assert resp.key(42) is None
        assert resp.metadata(42) is None


class TestCollectKey:
    def test_collects_all_nodes(self, responses):
        key = collect_key(responses, 0)
        assert key.nodes == ["node-1", "node-2", "node-3"]
        assert [s.node_index for s in key.shares_for(0)] == [1, 2, 3]
        assert key.tree_index == 1
        assert key.denomination == Decimal("1")
        assert len(key.merkle_root) == 32

    def test_accepts_parsed_models(self, responses):
        parsed = {k: NodeResponse.model_validate(v) for k, v in responses.items()}
        assert collect_key(parsed, 0).merkle_root == collect_key(responses, 0).merkle_root

    def test_missing_element_is_empty(self, responses):
        assert collect_key(responses, 0).shares_for(WOTS_LEN - 1) == []

    @pytest.mark.parametrize("field, value", [
        ("tree_index", 2),
        ("merkle_root", "0x" + "ab" * 32),
        ("merkle_proof", []),
    ])
    def test_disagreement_is_fatal(self, responses, field, value):
        responses["node-2"]["keys_metadata"][0][field] = value
        with pytest.raises(InconsistentMetadataError) as exc:
            collect_key(responses, 0)
        assert exc.value.field == field
        assert exc.value.node_id == "node-2"

    def test_denomination_disagreement(self, responses):
        responses["node-3"]["keys_metadata"][0]["denomination"] = "2"
        with pytest.raises(InconsistentMetadataError):
            collect_key(responses, 0)

    def test_equivalent_denominations_agree(self, responses):
        responses["node-3"]["keys_metadata"][0]["denomination"] = "1.00"
        assert collect_key(responses, 0).denomination == 1

    def test_conflicting_share_values(self, responses):
        shares = responses["node-1"]["keyshares"][0]["shares"]
        dup = dict(shares[0], share_value="0x01")
        responses["node-2"]["keyshares"][0]["shares"].append(dup)
        with pytest.raises(InconsistentMetadataError) as exc:
            collect_key(responses, 0)
        assert exc.value.field == "share_value"

    def test_share_outside_field(self, responses):
        responses["node-1"]["keyshares"][0]["shares"][0]["share_value"] = hex(ORDER)
        with pytest.raises(ReconstructionError):
            collect_key(responses, 0)

    def test_no_metadata(self, responses):
        for r in responses.values():
            r["keys_metadata"] = []
        with pytest.raises(InconsistentMetadataError):
            collect_key(responses, 0)

    def test_node_without_key_is_skipped(self, responses):
        responses["node-3"]["keyshares"] = []
        key = collect_key(responses, 0)
        assert key.nodes == ["node-1", "node-2"]
        assert len(key.shares_for(0)) == 2

    def test_published_address(self, responses, ecdsa_bundle):
        _, _, address = ecdsa_bundle
        for r in responses.values():
            r["keys_metadata"][0]["address"] = "0x" + address.hex()
        assert collect_key(responses, 0).expected_address == address
