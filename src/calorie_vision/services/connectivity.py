"""Backend reachability probing."""

import logging
from dataclasses import dataclass, field

import httpx

from calorie_vision.adapters.backend_client import BackendClient
from calorie_vision.domain.connectivity import ConnectivityState
from calorie_vision.services.http_errors import (
    status_code_from_exception,
    transport_detail,
)

_logger = logging.getLogger(__name__)


@dataclass
class ConnectivityMonitor:
    """Probe the health endpoint and keep the latest trusted state.

    Probes are not queued. Each call gets a generation number and only the
    most recently started probe may update ``state``; an older probe that
    finishes late still returns its own result to its caller.
    """

    client: BackendClient
    state: ConnectivityState = field(default_factory=ConnectivityState.unknown)
    _generation: int = 0

    async def probe(self) -> ConnectivityState:
        """Issue one health request and classify the outcome."""
        self._generation += 1
        generation = self._generation
        result = await self._check()
        if generation == self._generation:
            self.state = result
        else:
            _logger.info("Discarding superseded probe result: %s", result.status)
        return result

    def reset(self) -> None:
        """Forget the last result and supersede in-flight probes."""
        self._generation += 1
        self.state = ConnectivityState.unknown()

    async def _check(self) -> ConnectivityState:
        try:
            await self.client.health()
        except httpx.HTTPStatusError as exc:
            return ConnectivityState.unreachable(
                f"HTTP {status_code_from_exception(exc)}"
            )
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            return ConnectivityState.unreachable(transport_detail(exc))
        except ValueError:
            return ConnectivityState.unreachable("Invalid health response")
        return ConnectivityState.reachable()
