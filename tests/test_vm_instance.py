# tests/test_vm_instance.py
from datetime import datetime, timezone

import pydantic
import pytest

from orka_client.api.exceptions import MalformedResponse, ValidationError
from orka_client.api.request import LICENSE_AUTH, TOKEN_AUTH, Request
from orka_client.models import Disk, Image, LazyRef, Node, PortMapping, VMInstance

from conftest import RecordingConnection


def test_from_wire_maps_every_field(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    assert vm.id == "a1b2c3"
    assert vm.name == "ci-runner"
    assert vm.node_status == "READY"
    assert vm.ip == "10.221.188.11"
    assert vm.vnc_port == 6000
    assert vm.screen_sharing_port == 5900
    assert vm.ssh_port == 8822
    assert vm.cpu == 6
    assert vm.vcpu == 6
    assert vm.ram == "16G"
    assert vm.configuration_template == "default"
    assert vm.status == "running"
    assert vm.io_boost is True
    assert vm.use_saved_state is False
    assert vm.creation_time == datetime(2022, 3, 14, 9, 26, 53, tzinfo=timezone.utc)


def test_nested_resources_are_lazy(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    assert isinstance(vm.node, LazyRef)
    assert vm.node.key == "macpro-1"
    assert vm.owner.key == "jane@example.com"
    assert vm.base_image.key == "monterey-base.img"
    assert vm.config.key == "ci-runner-config"
    assert not any(r.is_resolved for r in (vm.node, vm.owner, vm.base_image, vm.config))
    assert conn.requests == []


def test_listing_many_instances_issues_no_fetches(conn, vm_payload):
    for i in range(20):
        VMInstance.from_wire({**vm_payload, "virtual_machine_id": f"vm{i}"}, conn)

    assert conn.requests == []


def test_reserved_ports_keep_server_order(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    assert vm.reserved_ports == (
        PortMapping(host_port=2222, guest_port=22, protocol="tcp"),
        PortMapping(host_port=5900, guest_port=5900, protocol="tcp"),
    )


def test_absent_optional_fields_default(conn):
    vm = VMInstance.from_wire(
        {
            "virtual_machine_id": "a1",
            "virtual_machine_name": "bare",
            "creation_timestamp": "2022-03-14T09:26:53Z",
        },
        conn,
    )

    assert vm.node is None
    assert vm.owner is None
    assert vm.vnc_port == 0
    assert vm.ssh_port == 0
    assert vm.reserved_ports == ()
    assert vm.io_boost is False


@pytest.mark.parametrize("port, expected", [("2222", 2222), ("N/A", 0), ("", 0), (None, 0)])
def test_ports_parse_leniently(conn, vm_payload, port, expected):
    vm = VMInstance.from_wire({**vm_payload, "ssh_port": port}, conn)

    assert vm.ssh_port == expected


def test_unknown_fields_are_ignored(conn, vm_payload):
    vm = VMInstance.from_wire({**vm_payload, "gpu_passthrough": "maybe"}, conn)

    assert vm.id == "a1b2c3"


@pytest.mark.parametrize("missing", ["virtual_machine_id", "virtual_machine_name"])
def test_missing_identity_is_malformed(conn, vm_payload, missing):
    payload = dict(vm_payload)
    del payload[missing]

    with pytest.raises(MalformedResponse):
        VMInstance.from_wire(payload, conn)


def test_missing_identity_is_malformed_even_when_sparse(conn):
    with pytest.raises(MalformedResponse):
        VMInstance.from_wire({"virtual_machine_name": "only-a-name"}, conn)


@pytest.mark.parametrize("timestamp", ["not a date", "14/03/2022 09:26", "2022-03-14", 1647250013])
def test_bad_creation_time_is_malformed(conn, vm_payload, timestamp):
    with pytest.raises(MalformedResponse):
        VMInstance.from_wire({**vm_payload, "creation_timestamp": timestamp}, conn)


def test_non_object_payload_is_malformed(conn):
    with pytest.raises(MalformedResponse):
        VMInstance.from_wire(["not", "a", "dict"], conn)


def test_snapshot_is_immutable(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    with pytest.raises(pydantic.ValidationError):
        vm.status = "stopped"


@pytest.mark.parametrize(
    "action, path",
    [
        ("start", "resources/vm/exec/start"),
        ("stop", "resources/vm/exec/stop"),
        ("suspend", "resources/vm/exec/suspend"),
        ("resume", "resources/vm/exec/resume"),
        ("revert", "resources/vm/exec/revert"),
        ("save_state", "resources/vm/configs/save-state"),
        ("commit_to_base_image", "resources/image/commit"),
    ],
)
async def test_simple_actions(conn, vm_payload, action, path):
    vm = VMInstance.from_wire(vm_payload, conn)

    assert await getattr(vm, action)() is None
    assert conn.requests == [
        Request(method="POST", path=path, body={"orka_vm_name": "a1b2c3"}, auth=TOKEN_AUTH)
    ]


async def test_actions_do_not_change_snapshot(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)
    before = vm.model_dump()

    await vm.stop()
    await vm.migrate("macpro-2")
    await vm.scale(3)

    assert vm.model_dump() == before
    assert vm.status == "running"


async def test_delete_uses_token_only(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    await vm.delete()

    assert conn.requests == [
        Request(
            method="DELETE",
            path="resources/vm/delete",
            body={"orka_vm_name": "a1b2c3"},
            auth=TOKEN_AUTH,
        )
    ]


async def test_delete_as_admin_adds_license(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn, admin=True)

    await vm.delete()

    assert vm.admin is True
    assert conn.requests[0].auth == LICENSE_AUTH


async def test_unscale_is_scale_one(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    await vm.scale(1)
    await vm.unscale()

    scaled, unscaled = conn.requests
    assert scaled == unscaled
    assert scaled.method == "PATCH"
    assert scaled.path == "resources/vm/scale"
    assert scaled.body == {"orka_vm_name": "a1b2c3", "replicas": 1}


async def test_migrate_and_clone_share_body(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    await vm.migrate("macpro-2")
    await vm.clone("macpro-2")

    migrate, clone = conn.requests
    assert migrate.path == "resources/vm/migrate"
    assert clone.path == "resources/vm/clone"
    assert migrate.body == clone.body == {
        "orka_vm_name": "a1b2c3",
        "current_node_name": "macpro-1",
        "new_nodes": ["macpro-2"],
    }
    assert conn.requests and not vm.node.is_resolved


async def test_destination_node_accepts_model_or_reference(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)
    node = Node.from_wire({"name": "macpro-3"}, conn)

    await vm.migrate(node)
    await vm.clone(Node.lazy("macpro-4", conn))

    assert conn.requests[0].body["new_nodes"] == ["macpro-3"]
    assert conn.requests[1].body["new_nodes"] == ["macpro-4"]


async def test_attach_disk_accepts_image_or_name(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)
    image = Image.from_wire({"image": "data.img"}, conn)

    await vm.attach_disk(image, mount_point="sdb")
    await vm.attach_disk("data.img", mount_point="sdb")

    first, second = conn.requests
    assert first == second
    assert first.body == {
        "orka_vm_name": "a1b2c3",
        "image_name": "data.img",
        "mount_point": "sdb",
    }


async def test_attach_disk_rejects_unknown_types(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    with pytest.raises(TypeError):
        await vm.attach_disk(42, mount_point="sdb")


async def test_save_new_base_image_returns_lazy_image(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    image = await vm.save_new_base_image("snapshot.img")

    assert conn.requests == [
        Request(
            method="POST",
            path="resources/image/save",
            body={"orka_vm_name": "a1b2c3", "new_name": "snapshot.img"},
        )
    ]
    assert isinstance(image, LazyRef)
    assert image.key == "snapshot.img"
    assert not image.is_resolved


async def test_resize_image(conn, vm_payload):
    vm = VMInstance.from_wire(vm_payload, conn)

    image = await vm.resize_image(
        username="admin", password="s3cret", image_name="big.img", image_size="100G"
    )

    assert conn.requests[0].path == "resources/image/resize"
    assert conn.requests[0].body == {
        "orka_vm_name": "a1b2c3",
        "vm_username": "admin",
        "vm_password": "s3cret",
        "new_image_size": "100G",
        "new_image_name": "big.img",
    }
    assert image.key == "big.img"


async def test_disks_fetch_on_every_iteration(vm_payload):
    path = "resources/vm/list-disks/a1b2c3"
    conn = RecordingConnection(
        {
            path: {
                "drives": [
                    {"type": "file", "device": "disk", "target": "sda", "source": "/a.img"},
                    {"type": "file", "device": "disk", "target": "sdb", "source": "/b.img"},
                ]
            }
        }
    )
    vm = VMInstance.from_wire(vm_payload, conn)

    disks = vm.disks()
    assert conn.requests == []

    listed = [d async for d in disks]
    again = [d async for d in vm.disks()]

    assert listed == again
    assert listed[0] == Disk(type="file", device="disk", target="sda", source="/a.img")
    assert [d.target for d in listed] == ["sda", "sdb"]
    assert conn.calls(path) == 2
    assert conn.requests[0].method == "GET"


async def test_action_errors_propagate(vm_payload):
    error = ValidationError("VM is scaled", status_code=400)
    conn = RecordingConnection({"resources/vm/migrate": error})
    vm = VMInstance.from_wire(vm_payload, conn)

    with pytest.raises(ValidationError) as exc_info:
        await vm.migrate("macpro-2")

    assert exc_info.value is error


async def test_resolving_node_reference(vm_payload):
    conn = RecordingConnection(
        {"resources/node/status/macpro-1": {"node_status": {"name": "macpro-1", "state": "READY"}}}
    )
    vm = VMInstance.from_wire(vm_payload, conn)

    node = await vm.node.resolve()
    again = await vm.node.resolve()

    assert node is again
    assert node.state == "READY"
    assert conn.calls("resources/node/status/macpro-1") == 1


async def test_admin_node_reference_sends_license(vm_payload):
    conn = RecordingConnection(
        {"resources/node/status/macpro-1": {"node_status": {"name": "macpro-1"}}}
    )
    vm = VMInstance.from_wire(vm_payload, conn, admin=True)

    await vm.node.resolve()

    assert conn.requests[0].auth == LICENSE_AUTH


async def test_list_all_flattens_deployed_resources(vm_payload):
    conn = RecordingConnection(
        {
            "resources/vm/list": {
                "virtual_machine_resources": [
                    {
                        "virtual_machine_name": "ci-runner",
                        "vm_deployment_status": "Deployed",
                        "status": [
                            vm_payload,
                            {**vm_payload, "virtual_machine_id": "d4e5f6"},
                        ],
                    },
                    {
                        "virtual_machine_name": "idle",
                        "vm_deployment_status": "Not Deployed",
                    },
                ]
            }
        }
    )

    instances = await VMInstance.list_all(conn)

    assert [vm.id for vm in instances] == ["a1b2c3", "d4e5f6"]


async def test_list_all_as_admin(vm_payload):
    conn = RecordingConnection({"resources/vm/list/all": {"virtual_machine_resources": []}})

    assert await VMInstance.list_all(conn, admin=True) == []
    assert conn.requests[0].auth == LICENSE_AUTH
