"""
File download examples.

Demonstrates blob responses, Content-Disposition filenames, progress
reporting and cancelling a download by abort_id.
"""

import asyncio
from pathlib import Path

from omni_request import RequestClient, cancel_request, extend, request


async def download_blob():
    """Download binary content and save it under the server-provided name."""
    print("\n=== Blob download ===")

    async with RequestClient(prefix="https://httpbin.org") as client:
        response = await client.get(
            "/response-headers",
            params={"Content-Disposition": 'attachment; filename="report.json"'},
            response_type="blob",
        )

    filename = response.filename or "download.bin"
    path = Path("downloads") / filename
    path.parent.mkdir(exist_ok=True)
    path.write_bytes(response.body)
    print(f"Saved {len(response.body)} bytes to {path}")


async def download_with_progress():
    """Progress callback receives (loaded, total); total is 0 when unknown."""
    print("\n=== Download with progress ===")

    def on_progress(loaded, total):
        if total:
            print(f"\r{loaded * 100 // total:3d}% ({loaded}/{total} bytes)", end="")
        else:
            print(f"\r{loaded} bytes", end="")

    async with RequestClient(prefix="https://httpbin.org") as client:
        response = await client.get("/bytes/102400", response_type="arraybuffer", on_progress=on_progress)

    print(f"\nDone: {len(response.body)} bytes via {response.raw.__class__.__module__}")


async def cancel_download():
    """Cancel a slow download from another task."""
    print("\n=== Cancel download ===")

    extend(prefix="https://httpbin.org")

    def on_abort(event):
        print(f"Aborted {event.abort_id} ({event.transport})")

    task = asyncio.ensure_future(request(
        "/drip",
        params={"duration": 10, "numbytes": 100},
        response_type="text",
        abort_id="drip",
        on_abort=on_abort,
    ))
    await asyncio.sleep(1)
    cancel_request("drip")

    response = await task
    print(f"Status: {response.status}, aborted: {response.aborted}, message: {response.message}")


async def main():
    await download_blob()
    await download_with_progress()
    await cancel_download()


if __name__ == "__main__":
    asyncio.run(main())
