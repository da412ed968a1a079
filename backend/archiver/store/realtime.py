"""Realtime tree clients.

A tree is a nested JSON document addressed by slash-separated paths, the
shape of a Firebase Realtime Database. Writing ``None`` removes a node and
empty parents disappear with it. ``listen`` reports changes under a path.
"""

from __future__ import annotations

import copy
import logging
import secrets
import threading
import time
from typing import Any, Callable, Protocol

import httpx

logger = logging.getLogger(__name__)

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class TreeClient(Protocol):
    """Operations the tree adapter needs from a realtime database."""

    def get(self, path: str) -> Any:
        ...

    def set(self, path: str, value: Any) -> None:
        ...

    def update(self, path: str, values: dict[str, Any]) -> None:
        """Multi-path update relative to ``path``; ``None`` values remove nodes."""
        ...

    def delete(self, path: str) -> None:
        ...

    def listen(self, path: str, on_change: Callable[[], None]) -> Callable[[], None]:
        """Call ``on_change`` after writes under ``path``; returns a stop function."""
        ...

    def close(self) -> None:
        ...


class PushIdGenerator:
    """Chronologically sortable 20-character keys, as Firebase's push() makes.

    8 characters of millisecond timestamp followed by 12 random characters.
    Keys generated within the same millisecond increment the random part so
    they still sort in creation order.
    """

    def __init__(self):
        self._last_time = 0
        self._last_random = [0] * 12
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            now = max(int(time.time() * 1000), self._last_time)
            duplicate = now == self._last_time
            self._last_time = now

            time_chars = []
            for _ in range(8):
                time_chars.append(PUSH_CHARS[now % 64])
                now //= 64

            if not duplicate:
                self._last_random = [secrets.randbelow(64) for _ in range(12)]
            else:
                i = 11
                while i >= 0 and self._last_random[i] == 63:
                    self._last_random[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_random[i] += 1

            return "".join(reversed(time_chars)) + "".join(PUSH_CHARS[n] for n in self._last_random)


generate_push_id = PushIdGenerator()


def _split(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def _overlaps(a: list[str], b: list[str]) -> bool:
    n = min(len(a), len(b))
    return a[:n] == b[:n]


def _assign(node: dict, parts: list[str], value: Any) -> None:
    head, rest = parts[0], parts[1:]
    if not rest:
        if value is None or value == {}:
            node.pop(head, None)
        else:
            node[head] = copy.deepcopy(value)
        return
    child = node.get(head)
    if not isinstance(child, dict):
        if value is None:
            return
        child = node[head] = {}
    _assign(child, rest, value)
    if not child:
        node.pop(head, None)


class MemoryTree:
    """In-process tree; listeners run synchronously after each write."""

    def __init__(self, data: dict | None = None):
        self._root: dict = copy.deepcopy(data) if data else {}
        self._lock = threading.RLock()
        self._listeners: list[tuple[list[str], Callable[[], None]]] = []

    def get(self, path: str) -> Any:
        with self._lock:
            node: Any = self._root
            for part in _split(path):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
            return copy.deepcopy(node)

    def _write(self, writes: list[tuple[list[str], Any]]) -> None:
        with self._lock:
            for parts, value in writes:
                if not parts:
                    self._root = copy.deepcopy(value) if isinstance(value, dict) else {}
                else:
                    _assign(self._root, parts, value)
            listeners = list(self._listeners)

        for watched, on_change in listeners:
            if any(_overlaps(watched, parts) for parts, _ in writes):
                on_change()

    def set(self, path: str, value: Any) -> None:
        self._write([(_split(path), value)])

    def update(self, path: str, values: dict[str, Any]) -> None:
        base = _split(path)
        self._write([(base + _split(rel), value) for rel, value in values.items()])

    def delete(self, path: str) -> None:
        self.set(path, None)

    def listen(self, path: str, on_change: Callable[[], None]) -> Callable[[], None]:
        entry = (_split(path), on_change)
        with self._lock:
            self._listeners.append(entry)

        def stop() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return stop

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()


class FirebaseTree:
    """Firebase Realtime Database through its REST API.

    ``listen`` keeps a server-sent-events stream open on a daemon thread and
    reconnects after network errors. The stream only notices a stop request
    when the next event arrives; Firebase sends keep-alive events every
    30 seconds.
    """

    reconnect_delay = 5.0

    def __init__(self, database_url: str, auth_token: str | None = None, client: httpx.Client | None = None):
        self.database_url = database_url.rstrip("/")
        self._auth_token = auth_token
        self._http = client or httpx.Client(timeout=10.0)

    def _url(self, path: str) -> str:
        return f"{self.database_url}/{path.strip('/')}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    def get(self, path: str) -> Any:
        resp = self._http.get(self._url(path), params=self._params())
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()

    def set(self, path: str, value: Any) -> None:
        if value is None:
            self.delete(path)
            return
        resp = self._http.put(self._url(path), params=self._params(), json=value)
        resp.raise_for_status()

    def update(self, path: str, values: dict[str, Any]) -> None:
        resp = self._http.patch(self._url(path), params=self._params(), json=values)
        resp.raise_for_status()

    def delete(self, path: str) -> None:
        resp = self._http.delete(self._url(path), params=self._params())
        resp.raise_for_status()

    def listen(self, path: str, on_change: Callable[[], None]) -> Callable[[], None]:
        stop = threading.Event()
        thread = threading.Thread(
            target=self._stream,
            args=(path, on_change, stop),
            name=f"firebase-listen:{path}",
            daemon=True,
        )
        thread.start()
        return stop.set

    def _stream(self, path: str, on_change: Callable[[], None], stop: threading.Event) -> None:
        headers = {"Accept": "text/event-stream"}
        while not stop.is_set():
            try:
                with self._http.stream(
                    "GET", self._url(path), params=self._params(), headers=headers, timeout=None
                ) as resp:
                    resp.raise_for_status()
                    event = None
                    for line in resp.iter_lines():
                        if stop.is_set():
                            return
                        if line.startswith("event:"):
                            event = line[len("event:"):].strip()
                            if event in ("cancel", "auth_revoked"):
                                logger.warning("Realtime stream for %s ended: %s", path, event)
                                return
                        elif line.startswith("data:") and event in ("put", "patch"):
                            on_change()
            except httpx.HTTPError as exc:
                logger.warning("Realtime stream for %s dropped: %s", path, exc)
            stop.wait(self.reconnect_delay)

    def close(self) -> None:
        self._http.close()
