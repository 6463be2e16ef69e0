# demo_stream_file_list.py
# Version: v1

r"""
Quick smoke run: resolve the caller's user folder and stream its listing.

Run with virtualenv active and env vars loaded:
  export GMDATA_ROOT_URL=https://gmdata.example.com/services/gmdata
  export GMDATA_USER_DN="CN=alice,OU=People,O=Example"
  python demo_stream_file_list.py

Set GMDATA_MOCK_MODE=1 to run against the in-process mock service.
"""

import asyncio
import logging

from gmdata_client.tools.tasks import _make_client


async def main() -> None:
    client = _make_client()

    config = await client.get_config()
    print(f"Namespace oid={config.namespace_oid} user field={config.namespace_user_field}")

    folder = await client.get_user_folder(config)
    if not folder.ok:
        print("Could not resolve user folder:", folder.error)
        return

    path = f"world/{folder.value}"
    print(f"Streaming {path}")

    count = 0
    async for item in client.stream_file_list(path):
        count += 1
        kind = "file" if item.isfile else "folder"
        print(f"- {item.name} ({kind}, oid={item.oid})")

    print("Items returned:", count)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
