"""
入口转发

本项目已整理为可复用的包与 CLI：
  - 包名: site_locator
  - CLI: site-locator

此文件仅用于兼容 `python main.py` 的运行方式，会转发到 `site_locator.cli:main`。
"""

import sys

from site_locator.cli import main as _cli_main


def main():
    return _cli_main()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
