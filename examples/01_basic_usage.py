"""
Basic omni-request usage.

Demonstrates GET, POST, PUT, DELETE and the module-level extend().
"""

import asyncio

from omni_request import ClientConfig, RequestClient, extend, request


async def basic_get_request():
    """Simple GET request."""
    print("\n=== Basic GET Request ===")

    async with RequestClient(prefix="https://jsonplaceholder.typicode.com") as client:
        response = await client.get("/posts/1")

    print(f"Status: {response.status}")
    print(f"Data: {response.result}")


async def post_with_json():
    """POST request with JSON body."""
    print("\n=== POST with JSON ===")

    async with RequestClient(prefix="https://jsonplaceholder.typicode.com") as client:
        response = await client.post("/posts", data={
            "title": "My Post",
            "body": "This is the content",
            "userId": 1
        })

    print(f"Status: {response.status}")
    print(f"Created: {response.result}")


async def put_and_delete():
    """PUT and DELETE requests."""
    print("\n=== PUT / DELETE ===")

    config = ClientConfig.create(
        prefix="https://jsonplaceholder.typicode.com",
        headers={"X-Client": "omni-request-example"},
    )
    async with RequestClient(config) as client:
        updated = await client.put("/posts/1", data={"id": 1, "title": "Updated Title"})
        deleted = await client.delete("/posts/1")

    print(f"PUT status: {updated.status}")
    print(f"DELETE success: {deleted.success}")


async def module_level_api():
    """Process-wide configuration via extend()."""
    print("\n=== extend() + request() ===")

    extend(prefix="https://jsonplaceholder.typicode.com")
    response = await request("/users", params={"_limit": 3})

    for user in response.result:
        print(f"- {user['name']}")


async def error_status():
    """Non-2xx statuses come back as responses, not exceptions."""
    print("\n=== Error status ===")

    async with RequestClient(prefix="https://jsonplaceholder.typicode.com") as client:
        response = await client.get("/posts/999999")

    print(f"Status: {response.status}, success: {response.success}")


async def main():
    await basic_get_request()
    await post_with_json()
    await put_and_delete()
    await module_level_api()
    await error_status()


if __name__ == "__main__":
    asyncio.run(main())
