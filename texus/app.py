"""Service entry point: ticker publishing, candle request scheduling and storage."""

from __future__ import annotations

import argparse
import json
import logging
import random
import threading
import time
from datetime import datetime, timezone
from typing import Any, Sequence

import redis
import requests

from texus.candle import RestQueue, period_to_minutes
from texus.constants import TICKERINFO_PUBLISH
from texus.core import Core
from texus.ticker import TickerInfoResp
from texus.writelog import WriteLog

logger = logging.getLogger(__name__)

REST_QUEUE = "restQueue"
WATCHED_COINS = 5
_HTTP_TIMEOUT = 10
_MINUTE = 60.0

# period, delay, mdura, bar period, once count, spread
SCHEDULES = (
    (380, 90, 380, "15m", 4, 7),
    (510, 90, 500, "30m", 5, 8),
    (770, 0, 760, "1H", 9, 12),
    (820, 0, 820, "2H", 12, 15),
    (1280, 150, 1280, "4H", 15, 19),
    (1440, 180, 1440, "6H", 17, 21),
    (1680, 180, 1680, "12H", 19, 23),
    (1920, 4, 1920, "1D", 25, 30),
    (3840, 220, 3840, "2D", 26, 31),
    (6400, 4, 6400, "5D", 28, 35),
)


def normalize_queue_item(raw: str | bytes) -> RestQueue | None:
    """Decode a queued request; position keys become USDT pairs, USDT itself is dropped."""
    request = RestQueue.from_json(raw)
    parts = request.inst_id.split("|")
    if parts[0] == "USDT":
        return None
    if len(parts) > 1 and parts[1] == "position":
        request.inst_id = parts[0] + "-USDT"
    return request


def build_rest_queue(
    inst_id: str, bar_period: str, spread: int, now: datetime | None = None
) -> RestQueue:
    """A request for candles ending a random number (below spread) of bars before now."""
    now = datetime.now(timezone.utc) if now is None else now
    bars_back = random.randrange(spread)
    minutes = period_to_minutes(bar_period)
    now_ms = int(now.timestamp() * 1000)
    after = now_ms - now_ms % 60000 - bars_back * minutes * 60000
    return RestQueue(inst_id=inst_id, bar=bar_period, with_ws=False, after=after)


def _save_request(core: Core, request: RestQueue) -> None:
    logger.info("restQueue: %s %s %s", request.inst_id, request.bar, request.limit)
    core.save_rest_queue(request)


def loop_save_candle(core: Core) -> int:
    """Serve queued candle requests until the queue read returns nothing.

    Each request is fetched and stored in its own thread; returns how many
    requests were dispatched.
    """
    workers: list[threading.Thread] = []
    while True:
        try:
            item = core.redis.brpop(REST_QUEUE, timeout=0)
        except redis.RedisError as exc:
            logger.error("brpop err: %s", exc)
            continue
        if item is None:
            break
        raw = item[1]
        try:
            request = normalize_queue_item(raw)
        except ValueError as exc:
            logger.warning("invalid queue item %r: %s", raw, exc)
            continue
        if request is None:
            continue
        logger.info("after: %s", request.inst_id)
        worker = threading.Thread(target=_save_request, args=(core, request), daemon=True)
        worker.start()
        workers.append(worker)
    for worker in workers:
        worker.join()
    return len(workers)


def _push_coins(
    core: Core, coins: Sequence[str], bar_period: str, spread: int, mdura: float
) -> list[RestQueue]:
    """Queue requests for the coins spread evenly over mdura seconds; the last coin is left out."""
    step = max(mdura / (len(coins) + 2), 0.1)
    start = time.monotonic()
    end = start + mdura
    pushed = []
    for index, inst_id in enumerate(coins[:-1]):
        fire_at = start + step * (index + 1)
        if fire_at > end:
            break
        time.sleep(max(0.0, fire_at - time.monotonic()))
        request = build_rest_queue(inst_id, bar_period, spread)
        logger.info("allCoins lpush js: %s", request.to_json())
        try:
            core.redis.lpush(REST_QUEUE, request.to_json())
        except redis.RedisError as exc:
            logger.error("inner err: %s", exc)
            continue
        pushed.append(request)
    time.sleep(max(0.0, end - time.monotonic()))
    return pushed


def loop_all_coins_list(
    core: Core,
    period: int,
    delay: int,
    mdura: int,
    bar_period: str,
    once_count: int,
    spread: int,
) -> None:
    """Whenever the clock modulo period equals delay, queue candle requests for the watched coins."""
    logger.info(
        "start loop: period=%s delay=%s mdura=%s bar=%s once=%s spread=%s",
        period, delay, mdura, bar_period, once_count, spread,
    )
    while True:
        if int(time.time()) % period != delay:
            time.sleep(1)
            continue
        coins = core.get_score_list(WATCHED_COINS)
        logger.info("allCoins allScore %s", coins)
        if not coins:
            time.sleep(1)
            continue
        _push_coins(core, coins, bar_period, spread, float(mdura))


def _rest_base(core: Core) -> str:
    base = core.config.section("connect", "restBaseUrl")
    return base if isinstance(base, str) else ""


def _show_sys_time(core: Core) -> None:
    try:
        response = requests.get(_rest_base(core) + "/api/v5/public/time", timeout=_HTTP_TIMEOUT)
        logger.info("server system time: %s", response.text)
    except requests.RequestException as exc:
        logger.error("server time request failed: %s", exc)


def _rest_ticker(core: Core) -> int:
    """Publish the spot USDT tickers of the watched coins; returns how many were published."""
    url = _rest_base(core) + "/api/v5/market/tickers?instType=SPOT"
    try:
        response = requests.get(url, timeout=_HTTP_TIMEOUT)
        body: Any = json.loads(response.content) if response.content else None
    except (requests.RequestException, ValueError) as exc:
        logger.error("restTicker err: %s", exc)
        return 0
    if not isinstance(body, dict):
        logger.error("rsp body is null")
        return 0
    items = body.get("data") or []
    watched = core.get_score_list(WATCHED_COINS)
    suffix = core.publish_suffix()
    published = 0
    for item in items:
        try:
            info = TickerInfoResp.from_dict(item).convert()
        except ValueError as exc:
            logger.error("restTicker unmarshal err: %s", exc)
            return published
        if "-USDT" not in info.inst_id or info.inst_type != "SPOT":
            continue
        payload = json.dumps(info.to_dict(), separators=(",", ":"))
        for inst_id in watched:
            if inst_id != info.inst_id:
                continue
            core.log_queue.put(
                WriteLog(
                    content=payload.encode("utf-8"),
                    tag="sardine.log.ticker." + info.inst_id,
                    id=info.id,
                )
            )
            core.redis.publish(TICKERINFO_PUBLISH + suffix, payload)
            published += 1
    return published


def _ticker_loop(core: Core) -> None:
    _rest_ticker(core)
    while True:
        time.sleep(_MINUTE)
        threading.Thread(target=_rest_ticker, args=(core,), daemon=True).start()


def main(argv: Sequence[str] | None = None) -> None:
    """Run the service until interrupted."""
    parser = argparse.ArgumentParser(
        prog="texus", description="Collect market tickers and candles into Redis."
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    core = Core.from_environment()
    _show_sys_time(core)
    threads = [threading.Thread(target=_ticker_loop, args=(core,), daemon=True)]
    threads.extend(
        threading.Thread(target=loop_all_coins_list, args=(core, *schedule), daemon=True)
        for schedule in SCHEDULES
    )
    threads.append(threading.Thread(target=loop_save_candle, args=(core,), daemon=True))
    threads.append(threading.Thread(target=core.write_log_loop, daemon=True))
    for thread in threads:
        thread.start()
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        logger.info("stopping")