"""The application core: configuration, Redis access and order and log dispatch."""

from __future__ import annotations

import json
import logging
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

import redis
import requests

from texus.candle import CandleData, CandleStore, RestQueue
from texus.config import AppConfig, RedisConfig
from texus.constants import ORDER_PUBLISH, ORDER_RESP_PUBLISH
from texus.private import Order
from texus.writelog import WriteLog

logger = logging.getLogger(__name__)

DEMO_ENV = "demoEnv"
SPOT = "SPOT"
_DEFAULT_REDIS_HOST = "localhost"
_DEFAULT_REDIS_PORT = 6379
_HTTP_TIMEOUT = 10


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def _split_address(address: str) -> tuple[str, int]:
    if not address:
        return _DEFAULT_REDIS_HOST, _DEFAULT_REDIS_PORT
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, _DEFAULT_REDIS_PORT
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid redis address {address!r}") from None
    return host or _DEFAULT_REDIS_HOST, port_number


def connect_redis(
    redis_config: RedisConfig, environ: Mapping[str, str] | None = None
) -> redis.Redis:
    """Create a Redis client; REDIS_URL in the environment overrides the address."""
    environ = os.environ if environ is None else environ
    address = environ.get("REDIS_URL") or redis_config.url
    host, port = _split_address(address)
    client = redis.Redis(
        host=host,
        port=port,
        password=redis_config.password or None,
        db=redis_config.index,
        decode_responses=True,
    )
    try:
        if not client.ping():
            logger.error("redis unavailable: %s db=%s", address, redis_config.index)
    except redis.RedisError as exc:
        logger.error("redis unavailable: %s db=%s: %s", address, redis_config.index, exc)
    return client


@dataclass
class SubAction:
    """A trade action to be posted on behalf of a subscriber."""

    action_name: str = ""
    for_all: bool = False
    meta_info: dict[str, Any] = field(default_factory=dict)


class Core:
    """Shared state of the running service: configuration, Redis and work queues."""

    #: Seconds to wait between dispatching two queued log records.
    log_pause: float = 0.05

    def __init__(
        self,
        config: AppConfig,
        redis_client: Any,
        env: str | None = None,
    ) -> None:
        self.config = config
        self.redis = redis_client
        self.env = config.env if env is None else env
        self.environ: Mapping[str, str] = os.environ
        self.log_queue: queue.Queue[WriteLog | None] = queue.Queue()
        self.order_queue: queue.Queue[Order | None] = queue.Queue()
        self.rest_queue: queue.Queue[RestQueue | None] = queue.Queue()

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> Core:
        """Load the configuration and connect to Redis as the environment says."""
        environ = os.environ if environ is None else environ
        env = environ.get("GO_ENV", "")
        logger.info("environment: %s", env)
        logger.info("gitBranch: %s", environ.get("gitBranchName", ""))
        logger.info("gitCommitID: %s", environ.get("gitCommitID", ""))
        config = AppConfig.load(environ)
        client = connect_redis(config.redis_conf, environ)
        core = cls(config, client, env)
        core.environ = environ
        return core

    def publish_suffix(self) -> str:
        """Suffix added to publish channels in the demo environment."""
        return "-" + DEMO_ENV if self.env == DEMO_ENV else ""

    def store(self) -> CandleStore:
        """A candle store writing to this core's Redis and log queue."""
        return CandleStore(self.redis, self.log_queue.put)

    def v5_public_invoke(self, sub_url: str) -> CandleData:
        """GET a public endpoint and decode the candles reply."""
        base = self.config.section("connect", "restBaseUrl")
        url = (base if isinstance(base, str) else "") + sub_url
        response = requests.get(url, timeout=_HTTP_TIMEOUT)
        return CandleData.from_dict(json.loads(response.content))

    def save_rest_queue(self, rest_queue: RestQueue) -> int:
        """Fetch the requested candles and store them; returns how many were stored."""
        link = rest_queue.link()
        logger.info("restLink: %s", link)
        try:
            reply = self.v5_public_invoke(link)
        except (requests.RequestException, ValueError) as exc:
            logger.error("public invoke failed: %s", exc)
            return 0
        logger.info("public invoke result count: %d", len(reply.data))
        return self.store().save_candles(rest_queue.inst_id, rest_queue.bar, reply)

    def get_score_list(self, count: int) -> list[str]:
        """The first count instruments of the hand-kept ticker list."""
        try:
            members = self.redis.zrange("tickersList|sortedSet", 0, count - 1)
        except redis.RedisError as exc:
            logger.error("zrange err: %s", exc)
            return []
        return [_text(member) for member in members]

    def get_my_favor_list(self) -> list[str]:
        """Position keys held with a USD value of at least 10, largest first."""
        members = self.redis.zrevrangebyscore(
            "private|positions|sortedSet", "100000000000", "10"
        )
        return [_text(member) for member in members]

    def wait_for_instruments(self, interval: float = 3.0) -> int:
        """Block until the spot instrument hash is populated; returns its size."""
        name = f"instruments|{SPOT}|hash"
        while True:
            time.sleep(interval)
            try:
                counts = int(self.redis.hlen(name))
            except redis.RedisError as exc:
                logger.error("err of hlen from redis: %s", exc)
                continue
            if counts:
                return counts

    def subscribe_ticker(self, op: str, delay: float = 5.0) -> list[str]:
        """Add every known spot instrument to the ticker set for op."""
        instruments = self.redis.hgetall(f"instruments|{SPOT}|hash")
        added = []
        for key, value in instruments.items():
            inst_id = _text(key)
            try:
                json.loads(_text(value))
            except ValueError:
                logger.warning("instrument %s holds invalid JSON", inst_id)
            time.sleep(delay)
            try:
                self.redis.sadd(f"tickers|{op}|set", inst_id)
            except redis.RedisError as exc:
                logger.error("err of sadd ticker %s: %s", inst_id, exc)
                continue
            added.append(inst_id)
        return added

    def process_order(self, order: Order) -> tuple[int, int]:
        """Publish an order and then the publish result; returns both receiver counts."""
        suffix = self.publish_suffix()
        body = json.dumps(order.to_dict(), separators=(",", ":"))
        received = int(self.redis.publish(ORDER_PUBLISH + suffix, body))
        logger.info("order publish res: %s content: %s", received, body)
        acknowledged = int(self.redis.publish(ORDER_RESP_PUBLISH + suffix, json.dumps(received)))
        return received, acknowledged

    def write_log_loop(self) -> int:
        """Post queued log records, each in its own thread, until None is queued.

        Returns the number of records handled.
        """
        workers: list[threading.Thread] = []
        handled = 0
        while True:
            record = self.log_queue.get()
            if record is None:
                break
            logger.info("start writelog: %s %s", record.tag, record.id)
            worker = threading.Thread(
                target=record.process, args=(self.environ,), daemon=True
            )
            worker.start()
            workers.append(worker)
            handled += 1
            time.sleep(self.log_pause)
        for worker in workers:
            worker.join()
        return handled