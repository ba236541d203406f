"""
shared_prompt.py: Overlapping requests share one prompt.

Three screens ask for the camera while the user is still looking at the
dialog. Only one prompt is shown; every screen gets the same answer.

Usage:
    PYTHONPATH=src python examples/shared_prompt.py
"""

import asyncio

from permflow import InMemoryPermissionHost, Permissions


async def slow_dialog(names: list[str]) -> list[bool]:
    print(f"dialog open for {', '.join(names)}")
    await asyncio.sleep(0.5)
    return [True] * len(names)


async def screen(permissions: Permissions, label: str) -> None:
    async for record in permissions.request_each_combined("CAMERA", "STORAGE"):
        print(f"{label}: {record.name} granted={record.granted}")


async def main() -> None:
    host = InMemoryPermissionHost(prompt_handler=slow_dialog)
    permissions = Permissions.from_host(host, logging_enabled=True)

    await asyncio.gather(*(screen(permissions, f"screen-{i}") for i in range(3)))
    print("prompts shown:", host.dispatched)


if __name__ == "__main__":
    asyncio.run(main())
