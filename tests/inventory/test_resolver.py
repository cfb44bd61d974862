"""Tests for identity derivation and EC2-backed resolution."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from node_lifecycle.core.errors import (
    IdentityUnresolvable,
    InstanceNotFound,
    InventoryUnavailable,
)
from node_lifecycle.inventory.identity import NodeIdentity, derive_api_url
from node_lifecycle.inventory.resolver import Ec2Inventory, IdentityResolver, InstanceRecord


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "DescribeInstances")


def _reservations(**instance) -> dict:
    return {"Reservations": [{"Instances": [instance]}]}


class TestDeriveApiUrl:
    def test_default(self):
        assert derive_api_url("node-1.internal") == "http://node-1.internal/bigbluebutton/api"

    def test_custom_scheme_and_path(self):
        assert derive_api_url("n", "https", "bbb/api") == "https://n/bbb/api"

    def test_empty_address(self):
        with pytest.raises(ValueError):
            derive_api_url("")

    def test_identity_for_address(self):
        identity = NodeIdentity.for_address("i-1", "node-1.internal")
        assert identity.instance_id == "i-1"
        assert identity.canonical_address == "node-1.internal"
        assert identity.api_url == "http://node-1.internal/bigbluebutton/api"


class TestEc2Inventory:
    def test_record(self):
        client = MagicMock()
        client.describe_instances.return_value = _reservations(
            InstanceId="i-1", PrivateDnsName="ip-10-0-0-1.ec2.internal", State={"Name": "shutting-down"}
        )
        record = Ec2Inventory(client).describe_instance("i-1")

        assert record == InstanceRecord("i-1", "ip-10-0-0-1.ec2.internal", "shutting-down")
        client.describe_instances.assert_called_once_with(InstanceIds=["i-1"])

    def test_empty_dns_name_is_none(self):
        client = MagicMock()
        client.describe_instances.return_value = _reservations(
            InstanceId="i-1", PrivateDnsName="", State={"Name": "terminated"}
        )
        assert Ec2Inventory(client).describe_instance("i-1").private_dns_name is None

    def test_no_reservations(self):
        client = MagicMock()
        client.describe_instances.return_value = {"Reservations": []}
        assert Ec2Inventory(client).describe_instance("i-1") is None

    def test_not_found_code(self):
        client = MagicMock()
        client.describe_instances.side_effect = _client_error("InvalidInstanceID.NotFound")
        assert Ec2Inventory(client).describe_instance("i-1") is None

    def test_malformed_id_is_not_absence(self):
        client = MagicMock()
        client.describe_instances.side_effect = _client_error("InvalidInstanceID.Malformed")
        with pytest.raises(InventoryUnavailable):
            Ec2Inventory(client).describe_instance("bogus")

    def test_other_client_error(self):
        client = MagicMock()
        client.describe_instances.side_effect = _client_error("UnauthorizedOperation")
        with pytest.raises(InventoryUnavailable) as exc_info:
            Ec2Inventory(client).describe_instance("i-1")
        assert exc_info.value.context.instance_id == "i-1"
        assert "UnauthorizedOperation" in exc_info.value.message

    def test_botocore_error(self):
        client = MagicMock()
        client.describe_instances.side_effect = EndpointConnectionError(endpoint_url="https://ec2")
        with pytest.raises(InventoryUnavailable):
            Ec2Inventory(client).describe_instance("i-1")


class TestIdentityResolver:
    def test_resolves(self, inventory):
        identity = IdentityResolver(inventory).resolve("i-1")
        assert identity.api_url == "http://node-1.internal/bigbluebutton/api"

    def test_custom_url_parts(self, inventory):
        identity = IdentityResolver(inventory, api_scheme="https", api_path="/b/api").resolve("i-1")
        assert identity.api_url == "https://node-1.internal/b/api"

    def test_missing_instance(self, inventory):
        with pytest.raises(InstanceNotFound):
            IdentityResolver(inventory).resolve("i-unknown")

    def test_terminated_without_dns_is_not_found(self, inventory):
        inventory.add("i-2", None, state="terminated")
        with pytest.raises(InstanceNotFound) as exc_info:
            IdentityResolver(inventory).resolve("i-2")
        assert exc_info.value.benign

    def test_live_without_dns_is_unresolvable(self, inventory):
        inventory.add("i-3", None, state="shutting-down")
        with pytest.raises(IdentityUnresolvable) as exc_info:
            IdentityResolver(inventory).resolve("i-3")
        assert not exc_info.value.benign

    def test_inventory_failure_propagates(self, inventory):
        inventory.error = InventoryUnavailable("ec2 down")
        with pytest.raises(InventoryUnavailable):
            IdentityResolver(inventory).resolve("i-1")
