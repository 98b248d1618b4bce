"""pricepulse库模式使用示例（离线静态数据源）"""

import asyncio

from pricepulse import PricePulseClient, PricePulseConfig
from pricepulse.core.models import PriceSnapshot
from pricepulse.core.providers import StaticMarketDataProvider
from pricepulse.core.services import to_frame


def print_snapshot(snapshot: PriceSnapshot) -> None:
    """打印一次价格快照"""
    print(f"\n=== {snapshot.source} update #{snapshot.update_count} ({snapshot.connection_state.value}) ===")
    for symbol, record in sorted(snapshot.prices.items()):
        print(f"{symbol:<6} ${record.price_usd:>12,.2f}  {record.price_local:>14,.2f}  {record.change_24h_percent:+.2f}%")


async def main() -> None:
    config = PricePulseConfig()
    config.store.poll_interval = 0.5

    async with PricePulseClient(config, provider=StaticMarketDataProvider(name="offline")) as client:
        # 一次性获取
        snapshot = await client.fetch_prices(["BTC", "ETH", "SOL"])
        print_snapshot(snapshot)

        # 订阅更新: 所有消费者共享同一个轮询循环
        async with client.consumer(["BTC", "DOGE"]) as consumer:
            seen = 0
            async for update in consumer.updates():
                if not update.is_live:
                    continue
                print_snapshot(update)
                seen += 1
                if seen == 2:
                    break

        # K线分析
        candles = await client.get_candles("BTC", "1h", 24)
        frame = to_frame(candles)
        print("\n=== BTC 1h candles ===")
        print(frame[["open", "close", "body_size", "momentum", "is_bullish"]].tail(5))
        print(f"mean momentum: {frame['momentum'].mean():.3f}")


if __name__ == "__main__":
    asyncio.run(main())
