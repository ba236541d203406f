"""
basic_request.py: Minimal permflow example.

Asks for two capabilities at once. The prompt handler stands in for a real
dialog and denies the microphone.

Usage:
    PYTHONPATH=src python examples/basic_request.py
"""

from permflow import InMemoryPermissionHost, Permissions


def answer(names: list[str]) -> list[bool]:
    print(f"prompt shown for: {', '.join(names)}")
    return [name != "MICROPHONE" for name in names]


async def main() -> None:
    permissions = Permissions.from_host(InMemoryPermissionHost(prompt_handler=answer))

    async for granted in permissions.request("CAMERA", "MICROPHONE"):
        print("all granted:", granted)

    async for record in permissions.request_each("CAMERA", "MICROPHONE"):
        print(f"{record.name}: granted={record.granted}")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
