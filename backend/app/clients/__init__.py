"""Exchange clients."""

from app.clients.binance_rest import BinanceRestClient, RateLimiter, binance_interval
from app.clients.binance_ws_kline import BinanceKlineWebSocket, KlineEvent, parse_kline_message
from app.clients.oanda_rest import OandaRestClient, oanda_granularity, parse_oanda_time
from app.clients.oanda_stream import OandaPriceStream, PriceTick, parse_price_line

__all__ = [
    "BinanceRestClient",
    "RateLimiter",
    "binance_interval",
    "BinanceKlineWebSocket",
    "KlineEvent",
    "parse_kline_message",
    "OandaRestClient",
    "oanda_granularity",
    "parse_oanda_time",
    "OandaPriceStream",
    "PriceTick",
    "parse_price_line",
]
