# gamestream/runtime/pairing.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from random import randint
from typing import Callable, Optional

from gamestream.core.errors import ErrorKind
from gamestream.engine.host_client import HostSessionClient
from gamestream.model.host import HostRecord, ServerInfo

PAIR_TIMEOUT_S = 60.0
PIN_DIGITS = 4


@dataclass(frozen=True)
class PairResult:
    ok: bool
    paired: bool
    current_game: int
    pin: str
    error: Optional[str] = None


def generate_pin(digits: int = PIN_DIGITS) -> str:
    # display only; the key exchange itself happens inside the engine
    return "".join(str(randint(0, 9)) for _ in range(digits))


class PairingHandler:
    """
    Runs the PIN pairing handshake against one host.

    The request timeout is raised for the duration of the call and always
    restored to the client's default afterwards.
    """

    def __init__(
        self,
        client: HostSessionClient,
        *,
        pair_timeout_s: float = PAIR_TIMEOUT_S,
        logger: Optional[logging.Logger] = None,
    ):
        self._client = client
        self._pair_timeout_s = float(pair_timeout_s)
        self._log = logger or logging.getLogger(__name__)

    def pair(self, host: HostRecord, *, on_pin: Optional[Callable[[str], None]] = None) -> PairResult:
        pin = generate_pin()
        server = host.server or ServerInfo(address=host.address)

        self._log.info("PAIRING_START address=%s", host.address)
        if on_pin is not None:
            on_pin(pin)

        with self._client.extended_timeout(self._pair_timeout_s):
            res = self._client.pair(server, pin)

        if not res.ok or res.value is None:
            msg = ErrorKind.PAIRING_FAILED.format(detail=res.detail or res.status.name)
            self._log.warning("PAIRING_FAILED address=%s status=%s detail=%s", host.address, res.status.name, res.detail)
            return PairResult(
                ok=False,
                paired=host.paired,
                current_game=host.running_app_id,
                pin=pin,
                error=msg,
            )

        self._log.info(
            "PAIRING_OK address=%s current_game=%d",
            host.address,
            res.value.current_game,
        )
        return PairResult(
            ok=True,
            paired=res.value.paired,
            current_game=int(res.value.current_game),
            pin=pin,
        )
