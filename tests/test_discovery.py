import itertools

from conftest import FakeOrchestrator, running

from autoreg.discovery import DiscoveryMode, detect_mode, discover
from autoreg.docker_ops import TaskInfo


def test_swarm_service_replicas_get_ordinals():
    orch = FakeOrchestrator()
    orch.add_service("stack_lobby", [running("t2"), running("t1")])

    found = discover(orch)

    assert found.mode is DiscoveryMode.ORCHESTRATED
    assert found.ids == {"lobby-1", "lobby-2"}
    assert found.addresses == {"lobby-1": ("stack_lobby", 25565), "lobby-2": ("stack_lobby", 25565)}
    assert found.backends["lobby-1"].instance == "t1"


def test_swarm_skips_proxy_unlabeled_and_unhealthy():
    orch = FakeOrchestrator()
    orch.add_service("stack_velocity", [running("v1")])
    orch.add_service("stack_redis", [running("r1")], task_labels={})
    orch.add_service(
        "stack_arena",
        [running("a1"), TaskInfo(id="a2", state="failed"), TaskInfo(id="a3", state="running", error="oom")],
    )

    found = discover(orch)

    assert found.ids == {"arena-1"}
    assert "list_tasks:svc-stack_velocity" not in orch.calls
    assert "list_tasks:svc-stack_redis" not in orch.calls


def test_swarm_falls_back_to_service_labels():
    orch = FakeOrchestrator()
    orch.add_service("stack_lobby", [running("t1")], labels={"com.plexverse.project.id": "p"}, task_labels={})

    assert discover(orch).ids == {"lobby-1"}


def test_not_a_swarm_uses_containers():
    orch = FakeOrchestrator(swarm=False)
    orch.add_container("stack_lobby_1")

    found = discover(orch)

    assert found.mode is DiscoveryMode.FLAT_CONTAINER
    assert found.ids == {"lobby-1"}
    assert "list_services" not in orch.calls


def test_service_listing_error_falls_back_in_same_cycle(not_a_swarm_error):
    orch = FakeOrchestrator(swarm=True)
    orch.service_error = not_a_swarm_error
    orch.add_container("local-lobby-1")

    mode, services = detect_mode(orch)
    assert mode is DiscoveryMode.FLAT_CONTAINER
    assert services == []
    assert discover(orch).ids == {"lobby-1"}


def test_empty_service_list_falls_back():
    orch = FakeOrchestrator(swarm=True)
    orch.add_container("stack_arena_1")

    assert discover(orch).mode is DiscoveryMode.FLAT_CONTAINER


def test_containers_grouped_by_base_name_with_alias_address():
    orch = FakeOrchestrator()
    orch.add_container("stack_lobby_2")
    orch.add_container("stack_lobby_1")
    orch.add_container("docker-micro-battles-1")
    orch.add_container("stack_velocity_1")
    orch.add_container("stack_lobby_3", status="Up 5 seconds (health: starting)")
    orch.add_container("stack_db_1", labels={})

    found = discover(orch)

    assert found.ids == {"lobby-1", "lobby-2", "micro-battles-1"}
    assert found.addresses["lobby-2"] == ("lobby", 25565)
    assert found.backends["lobby-1"].instance == "stack_lobby_1"
    assert found.backends["micro-battles-1"].host == "micro-battles"


def test_ordinals_do_not_depend_on_listing_order():
    names = ["stack_arena_3", "stack_arena_1", "stack_arena_2"]
    results = set()
    for perm in itertools.permutations(names):
        orch = FakeOrchestrator()
        for n in perm:
            orch.add_container(n)
        found = discover(orch)
        results.add(tuple(sorted((bid, b.instance) for bid, b in found.backends.items())))
    assert len(results) == 1

    for perm in itertools.permutations(["tc", "ta", "tb"]):
        orch = FakeOrchestrator()
        orch.add_service("stack_arena", [running(t) for t in perm])
        assert discover(orch).backends["arena-1"].instance == "ta"


def test_duplicate_backend_names_keep_first():
    orch = FakeOrchestrator()
    orch.add_service("a_lobby", [running("t1")])
    orch.add_service("b_lobby", [running("t9")])

    found = discover(orch)

    assert found.ids == {"lobby-1"}
    assert found.backends["lobby-1"].host == "a_lobby"
