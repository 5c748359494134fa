"""Tests for response envelope decoding."""

import json

import pytest

from conftest import node_payload
from workflowy_api.client.response_decoder import (
    ResponseShape,
    decode_created_id,
    decode_node,
    decode_node_envelope_list,
    decode_node_list,
    decode_response,
)
from workflowy_api.models import DecodeError, MalformedResponse, UnexpectedShape


def dumps(value):
    return json.dumps(value)


class TestSingleNode:
    def test_node_envelope(self):
        node = decode_node(dumps({"node": {"id": "id_1", "name": "Test Node"}}))
        assert node.id == "id_1"
        assert node.name == "Test Node"

    def test_bare_node_object_is_accepted(self):
        assert decode_node(dumps(node_payload("n1"))).id == "n1"

    def test_missing_envelope_is_unexpected_shape(self):
        with pytest.raises(UnexpectedShape) as info:
            decode_node(dumps({"nodes": []}))
        assert info.value.raw_body == '{"nodes": []}'

    def test_non_json_is_malformed(self):
        with pytest.raises(MalformedResponse):
            decode_node("Service Unavailable")
        with pytest.raises(MalformedResponse):
            decode_node("")

    def test_bad_timestamp_is_decode_error(self):
        body = dumps({"node": node_payload("n1", createdAt="last tuesday")})
        with pytest.raises(DecodeError) as info:
            decode_node(body)
        assert info.value.raw_body == body
        assert info.value.detail[0]["loc"] == ("createdAt",)

    def test_non_object_node_is_decode_error(self):
        with pytest.raises(DecodeError):
            decode_node(dumps({"node": "n1"}))


class TestNodeLists:
    def test_envelope_list(self):
        body = dumps({"nodes": [node_payload("a"), node_payload("b", parent_id="a")]})
        nodes = decode_node_envelope_list(body)
        assert [n.id for n in nodes] == ["a", "b"]
        assert nodes[1].parent_id == "a"

    def test_envelope_list_rejects_bare_array(self):
        with pytest.raises(UnexpectedShape):
            decode_node_envelope_list(dumps([node_payload("a")]))

    def test_child_listing_accepts_both_forms(self):
        assert [n.id for n in decode_node_list(dumps([node_payload("a")]))] == ["a"]
        assert [n.id for n in decode_node_list(dumps({"nodes": [node_payload("b")]}))] == ["b"]
        assert decode_node_list(dumps({"nodes": []})) == []

    def test_nodes_not_an_array(self):
        with pytest.raises(DecodeError):
            decode_node_list(dumps({"nodes": {"id": "a"}}))

    def test_one_bad_item_fails_the_list(self):
        body = dumps({"nodes": [node_payload("a"), {"id": "b"}]})
        with pytest.raises(DecodeError):
            decode_node_envelope_list(body)


class TestCreatedId:
    @pytest.mark.parametrize(
        "body",
        ['{"item_id": "id_1"}', '{"id": "id_1"}', '"id_1"', "id_1", "  id_1\n"],
    )
    def test_id_variants(self, body):
        assert decode_created_id(body) == "id_1"

    @pytest.mark.parametrize("body", ["", '{"status": "ok"}', "42", "null"])
    def test_no_id(self, body):
        with pytest.raises(UnexpectedShape):
            decode_created_id(body)


class TestDispatch:
    def test_shapes(self):
        single = dumps({"node": node_payload("a")})
        listing = dumps({"nodes": [node_payload("a")]})
        bare = dumps([node_payload("a")])
        assert decode_response(single, ResponseShape.SINGLE_NODE_ENVELOPE, "op").id == "a"
        assert len(decode_response(listing, ResponseShape.NODE_ARRAY_ENVELOPE, "op")) == 1
        assert len(decode_response(bare, ResponseShape.BARE_NODE_ARRAY, "op")) == 1
        assert decode_response("plain", ResponseShape.GENERIC, "op") == "plain"
        assert decode_response('{"a": 1}', ResponseShape.GENERIC, "op") == {"a": 1}

    def test_bare_array_shape_rejects_envelope(self):
        with pytest.raises(UnexpectedShape):
            decode_response(dumps({"nodes": []}), ResponseShape.BARE_NODE_ARRAY, "op")

    def test_node_list_shape_takes_either_form(self):
        bare = dumps([node_payload("a")])
        enveloped = dumps({"nodes": [node_payload("b")]})
        assert [n.id for n in decode_response(bare, ResponseShape.NODE_LIST, "op")] == ["a"]
        assert [n.id for n in decode_response(enveloped, ResponseShape.NODE_LIST, "op")] == ["b"]

    def test_created_id_shape(self):
        assert decode_response('{"item_id": "id_9"}', ResponseShape.CREATED_ID, "op") == "id_9"
        assert decode_response("id_9", ResponseShape.CREATED_ID, "op") == "id_9"
