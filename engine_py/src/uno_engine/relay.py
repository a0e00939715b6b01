"""
Broadcast/relay layer between the authority and every peer.

The authority never special-cases its own player: it owns one sink per
peer, and its own sink is a loop-back that hands events synchronously to
the local view through the same handler a remote peer's frames go
through.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel

from .errors import INTERNAL_ERROR, INVALID_EVENT, GameError
from .ws.events import (
    InboundEvent, JoinRoomEvent, OutboundEvent, create_error_event,
    encode_event, parse_inbound_event, parse_outbound_event
)

logger = logging.getLogger(__name__)


class Sink(ABC):
    """One delivery channel to one peer."""

    @abstractmethod
    def deliver(self, event: BaseModel) -> None:
        ...

    def close(self) -> None:
        pass


class LoopbackSink(Sink):
    """Synchronous local delivery, used for the authority's own player."""

    def __init__(self, handler: Callable[[OutboundEvent], None]):
        self.handler = handler

    def deliver(self, event: BaseModel) -> None:
        self.handler(event)


class QueueSink(Sink):
    """Encodes events onto an asyncio queue drained by a transport writer.

    One queue per connection keeps delivery in submission order.
    """

    def __init__(self, queue: Optional[asyncio.Queue] = None):
        self.queue = queue if queue is not None else asyncio.Queue()
        self.closed = False

    def deliver(self, event: BaseModel) -> None:
        if self.closed:
            raise ConnectionError("Sink is closed")
        self.queue.put_nowait(encode_event(event))

    def close(self) -> None:
        self.closed = True
        # Wake the writer so it can exit
        self.queue.put_nowait(None)


class Relay:
    """Registry of peer sinks.

    A sink that raises is unregistered and remembered in ``failed`` so the
    caller can treat the peer as disconnected once the current action has
    finished applying.
    """

    def __init__(self):
        self.sinks: Dict[str, Sink] = {}
        self.failed: List[str] = []

    def register(self, peer_id: str, sink: Sink) -> None:
        self.sinks[peer_id] = sink
        logger.info(f"Peer {peer_id} connected")

    def unregister(self, peer_id: str) -> Optional[Sink]:
        sink = self.sinks.pop(peer_id, None)
        if sink is not None:
            sink.close()
            logger.info(f"Peer {peer_id} disconnected")
        return sink

    def send_to(self, peer_id: str, event: BaseModel) -> None:
        sink = self.sinks.get(peer_id)
        if sink is None:
            logger.debug(f"Dropping {event.type.value} for unknown peer {peer_id}")
            return
        try:
            sink.deliver(event)
        except Exception as e:
            if isinstance(sink, LoopbackSink):
                # The local view is part of this process; never drop it
                logger.exception(f"Loop-back delivery of {event.type.value} failed")
                return
            logger.error(f"Error sending {event.type.value} to {peer_id}: {e}")
            self.sinks.pop(peer_id, None)
            if peer_id not in self.failed:
                self.failed.append(peer_id)

    def broadcast(self, peer_ids: Iterable[str], event: BaseModel) -> None:
        for peer_id in list(peer_ids):
            self.send_to(peer_id, event)

    def take_failed(self) -> List[str]:
        failed, self.failed = self.failed, []
        return failed


class HostContext:
    """Everything a handler needs: the session (authority only), who we
    are, and how to reach the others.

    ``is_authority`` is a capability: only a context holding a session may
    apply actions. A client context forwards its intents through ``uplink``.
    """

    def __init__(
        self,
        local_id: str,
        relay: Optional[Relay] = None,
        session=None,
        view=None,
        uplink: Optional[Sink] = None
    ):
        self.local_id = local_id
        self.relay = relay
        self.session = session
        self.view = view
        self.uplink = uplink

    @property
    def is_authority(self) -> bool:
        return self.session is not None

    def submit(self, event: InboundEvent) -> None:
        """Send one of our own intents to the authority."""
        if self.is_authority:
            self.receive(self.local_id, event)
        elif self.uplink is not None:
            self.uplink.deliver(event)
        else:
            raise RuntimeError("Not connected to a host")

    def receive(self, sender_id: str, raw: Union[str, bytes, dict, InboundEvent]) -> None:
        """Validate and apply one inbound frame at the authority."""
        if not self.is_authority:
            raise RuntimeError("Only the authority accepts actions")

        try:
            event = raw if isinstance(raw, BaseModel) else parse_inbound_event(raw)
            logger.debug(f"{event.type.value} from {sender_id}")
            if isinstance(event, JoinRoomEvent):
                self.session.add_player(sender_id, event.data.player_name)
            else:
                self.session.handle_action(sender_id, event)
        except ValueError as e:
            logger.warning(f"Bad frame from {sender_id}: {e}")
            self.relay.send_to(sender_id, create_error_event(str(e), INVALID_EVENT))
        except GameError as e:
            logger.warning(f"Rejected action from {sender_id}: {e}")
            self.relay.send_to(sender_id, create_error_event(e.message, e.code))
        except Exception:
            logger.exception(f"Error handling frame from {sender_id}")
            self.relay.send_to(sender_id, create_error_event("Internal server error", INTERNAL_ERROR))

        self.reap_failed()

    def deliver(self, raw: Union[str, bytes, dict, OutboundEvent]) -> None:
        """Apply an event from the authority to our local view."""
        event = raw if isinstance(raw, BaseModel) else parse_outbound_event(raw)
        if self.view is not None:
            self.view.apply(event)

    def disconnect(self, peer_id: str) -> None:
        self.relay.unregister(peer_id)
        if self.is_authority:
            self.session.remove_player(peer_id)
        self.reap_failed()

    def reap_failed(self) -> None:
        # Peers whose sink failed mid-broadcast are removed only now,
        # after the action that exposed them has been fully applied.
        if not self.is_authority:
            return
        failed = self.relay.take_failed()
        while failed:
            for peer_id in failed:
                logger.info(f"Removing unreachable peer {peer_id}")
                self.session.remove_player(peer_id)
            failed = self.relay.take_failed()

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
        if self.relay is not None:
            for peer_id in list(self.relay.sinks):
                self.relay.unregister(peer_id)


def create_host(
    local_id: str,
    name: str,
    rules=None,
    seed: Optional[int] = None,
    auto_start: bool = True,
    sleep=None
) -> HostContext:
    """
    Build the authority side: relay, session, and the host's own seat.

    The host is registered with a loop-back sink into its PeerView before
    it joins, so it sees its own lobby broadcast like everyone else.
    """
    from .rules import default_rules
    from .session import Session
    from .view import PeerView

    relay = Relay()
    kwargs = {"sleep": sleep} if sleep is not None else {}
    session = Session(relay, rules or default_rules, seed=seed, auto_start=auto_start, **kwargs)
    view = PeerView(local_id)
    relay.register(local_id, LoopbackSink(view.apply))
    ctx = HostContext(local_id, relay=relay, session=session, view=view)
    session.add_player(local_id, name)
    return ctx


def create_client(local_id: str, uplink: Sink) -> HostContext:
    """Build a passive peer that forwards intents through ``uplink``."""
    from .view import PeerView

    return HostContext(local_id, view=PeerView(local_id), uplink=uplink)
