import asyncio

from rich.console import Console
from rich.table import Table

from weakpool import WeakPool


class Buffer:
    """A reusable scratch buffer."""

    def __init__(self) -> None:
        self.items: list[int] = []

    def reset(self) -> None:
        self.items.clear()


def stats_table(title: str, pool: WeakPool[Buffer]) -> Table:
    table = Table(title=f"[bold]{title}[/]")
    table.add_column("Statistic", style="cyan")
    table.add_column("Value", style="magenta", justify="right")
    for key, value in pool.stats().as_dict().items():
        table.add_row(key, str(value))
    return table


async def run_demo() -> None:
    console = Console()
    console.print("[bold magenta]WeakPool Demo[/]", justify="center")
    console.print()

    created = 0

    def create() -> Buffer:
        nonlocal created
        created += 1
        return Buffer()

    pool: WeakPool[Buffer] = WeakPool(create, Buffer.reset, name="buffers")
    console.print(stats_table("Fresh pool", pool))

    # 1. A burst of concurrent use
    console.print("[bold blue]Acquiring 100 buffers...[/]")
    held = [pool.acquire() for _ in range(100)]
    for i, buf in enumerate(held):
        buf.items.append(i)
    console.print(stats_table("After acquiring 100", pool))

    # 2. Give them back; the overflow is only weakly held
    console.print("[bold blue]Releasing all buffers...[/]")
    for buf in held:
        pool.release(buf)
    console.print(stats_table("After releasing (before rescale)", pool))

    # 3. Drop our own references and let the rescale and reclamations run
    del held, buf
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    console.print(stats_table("After yielding to the event loop", pool))

    # 4. Reuse
    console.print("[bold blue]Acquiring 10 buffers again...[/]")
    before = created
    again = [pool.acquire() for _ in range(10)]
    console.print(
        f"Factory calls for the second burst: [bold]{created - before}[/] "
        f"(total {created})"
    )
    for buf in again:
        pool.release(buf)
    await asyncio.sleep(0)
    console.print(stats_table("Final state", pool))


if __name__ == "__main__":
    asyncio.run(run_demo())
