"""重置机器人状态。

删除已处理 ID 文件和状态文件，下次运行时重新建立基线。
"""
from __future__ import annotations

import argparse
import pathlib
from typing import List, Optional

from rich import print

from .config import Config
from .state import StateStore


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="删除 x-relay 的状态文件")
    parser.add_argument("--root", type=pathlib.Path, default=None, help="项目根目录（默认为安装位置）")
    args = parser.parse_args(argv)

    root = args.root or pathlib.Path(__file__).resolve().parents[2]
    paths = Config.paths(root)
    store = StateStore(paths["seen_file"], paths["state_file"])

    print("[yellow]重置机器人状态...[/yellow]")
    deleted = store.reset()

    for path in (store.seen_file, store.state_file):
        if path in deleted:
            print(f"[green]已删除[/green] {path}")
        elif path.exists():
            print(f"[red]删除失败[/red] {path}")
        else:
            print(f"{path} 不存在，无需删除")

    if deleted:
        print("[green]状态已重置，下次运行将重新开始。[/green]")
    else:
        print("未找到状态文件，机器人已是初始状态。")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
