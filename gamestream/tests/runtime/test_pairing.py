from __future__ import annotations

from dataclasses import replace

from gamestream.engine.base import GsStatus, Outcome, PairOutcome
from gamestream.engine.host_client import HostSessionClient
from gamestream.engine.simulated import SimulatedEngine, demo_hosts
from gamestream.model.host import HostRecord, ServerInfo
from gamestream.runtime.pairing import PairingHandler, generate_pin

ADDR = "10.0.0.2"


class TimeoutRecordingEngine(SimulatedEngine):
    def __init__(self, hosts, *, fail: bool = False, current_game: int = 0):
        super().__init__(hosts)
        self.fail = fail
        self.current_game = current_game
        self.timeout_during_pair = None

    def request_pairing(self, server: ServerInfo, pin: str) -> Outcome[PairOutcome]:
        self.timeout_during_pair = self.timeout_s
        if self.fail:
            return Outcome.failure(GsStatus.FAILED, "wrong pin")
        return Outcome.success(PairOutcome(paired=True, current_game=self.current_game))


def _host(eng: SimulatedEngine) -> HostRecord:
    return HostRecord(address=ADDR).with_server(eng.hosts[ADDR].server)


def test_generate_pin_is_four_digits():
    for _ in range(50):
        pin = generate_pin()
        assert len(pin) == 4
        assert pin.isdigit()


def test_pair_success_uses_extended_timeout_and_restores():
    eng = TimeoutRecordingEngine(demo_hosts([ADDR]))
    client = HostSessionClient(eng, default_timeout_s=5)
    pins = []

    res = PairingHandler(client, pair_timeout_s=60).pair(_host(eng), on_pin=pins.append)

    assert res.ok and res.paired
    assert res.current_game == 0
    assert pins == [res.pin]
    assert eng.timeout_during_pair == 60.0
    assert eng.timeout_s == 5.0


def test_pair_failure_reports_message_and_restores_timeout():
    eng = TimeoutRecordingEngine(demo_hosts([ADDR]), fail=True)
    client = HostSessionClient(eng, default_timeout_s=5)

    res = PairingHandler(client, pair_timeout_s=60).pair(_host(eng))

    assert not res.ok
    assert res.paired is False
    assert res.error == "Failed to pair to server:\nwrong pin"
    assert eng.timeout_s == 5.0


def test_pair_reports_running_game():
    eng = TimeoutRecordingEngine(demo_hosts([ADDR]), current_game=7)
    res = PairingHandler(HostSessionClient(eng)).pair(_host(eng))
    assert res.ok
    assert res.current_game == 7


def test_pair_against_simulator_marks_host_paired():
    eng = SimulatedEngine(demo_hosts([ADDR]))
    host = _host(eng)
    assert not host.paired

    res = PairingHandler(HostSessionClient(eng)).pair(host)
    assert res.ok
    assert eng.hosts[ADDR].server.paired is True


def test_pair_declined_keeps_previous_state():
    hosts = demo_hosts([ADDR])
    hosts[ADDR].accept_pairing = False
    hosts[ADDR].server = replace(hosts[ADDR].server, current_game=3)
    eng = SimulatedEngine(hosts)

    res = PairingHandler(HostSessionClient(eng)).pair(_host(eng))
    assert not res.ok
    assert res.current_game == 3
    assert "declined" in res.error
