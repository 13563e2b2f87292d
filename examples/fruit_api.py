from __future__ import annotations

import asyncio
import logging

from restcore import APIClient, RestClientError
from restcore.logging_ import setup_logging

log = logging.getLogger("fruit_api")


class FruitAPI(APIClient):
    """Client for https://fruityvice.com/"""

    def __init__(self, **config):
        super().__init__("https://fruityvice.com/api", config)

    async def get_all_fruit(self) -> list[dict]:
        return await self.request("fruit/all")

    async def get_fruit(self, name: str) -> dict:
        return await self.request(f"fruit/{name}")

    async def get_all_vegetables(self):
        return await self.request("vegetables")


async def main() -> None:
    setup_logging(verbose=False)
    api = FruitAPI()

    print("\n### Getting all fruit")
    for fruit in await api.get_all_fruit():
        print(fruit["name"])

    print("\n### Getting a single fruit")
    print(await api.get_fruit("apple"))

    try:
        print("\n### Getting all vegetables")
        print(await api.get_all_vegetables())
    except RestClientError as e:
        log.error("Failed to get vegetables: %s", e)


if __name__ == "__main__":
    asyncio.run(main())
