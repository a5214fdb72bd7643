"""Redis channel and scheduling constants."""

MAIN_ALLCOINS_PERIOD_MINUTES = 1
MAIN_ALLCOINS_ONCE_COUNTS = 3
MAIN_ALLCOINS_BAR_PERIOD = "3m"
ALLCANDLES_PUBLISH = "allCandles|publish"
ALLCANDLES_INNER_PUBLISH = "allCandlesInner|publish"
ORDER_PUBLISH = "private|order|publish"
TICKERINFO_PUBLISH = "tickerInfo|publish"
CCYPOSISTIONS_PUBLISH = "ccyPositions|publish"
SUBACTIONS_PUBLISH = "subActions|publish"
ORDER_RESP_PUBLISH = "private|actionResp|publish"