"""Event tables, message payloads, depth checksums and message parsing for the OKX v5 websocket protocol."""