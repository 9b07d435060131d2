"""Run one remote traceroute and print the hop table."""

import asyncio
import sys

from rich import print

from tracemap import MeasurementService, RunController, Succeeded, to_map_layers


async def main(target: str) -> None:
    async with MeasurementService() as service:
        controller = RunController(service)
        state = await controller.start(target)

    if not isinstance(state, Succeeded):
        print(f"[red]{state}[/red]")
        return

    print(str(state.result))
    layers = to_map_layers(state.result)
    if layers.empty:
        print("No geolocated hops.")
    for marker in layers.markers:
        print(f"{marker.role:>8} hop {marker.hop_index}: {marker.lat}, {marker.lon}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "1.1.1.1"))
