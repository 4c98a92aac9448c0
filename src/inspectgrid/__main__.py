from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

import anyio

from .errors import GridError
from .grid_root import detect_grid_root_candidates
from .runtime_checks import _is_missing_browser_error

if TYPE_CHECKING:
    from playwright.async_api import Page

_ANCESTRY_JS = """
() => {
  const anchor = document.querySelector('.ag-root-wrapper');
  if (!anchor) return [];
  const ancestry = [];
  let current = anchor;
  while (current && current.nodeType === Node.ELEMENT_NODE && ancestry.length < 14) {
    ancestry.push({
      tag: (current.tagName || '').toLowerCase(),
      id: current.id || '',
      class: typeof current.className === 'string' ? current.className : '',
      'data-testid': current.getAttribute('data-testid') || '',
      'data-test': current.getAttribute('data-test') || '',
      'data-qa': current.getAttribute('data-qa') || '',
    });
    current = current.parentElement;
  }
  return ancestry;
}
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inspectgrid",
        description="Open a page, locate an AG Grid and print its state and rendered rows.",
    )
    parser.add_argument("--url", required=True, help="Page that renders the grid.")
    parser.add_argument("--grid", help="Grid name (data-testid) or CSS selector. Auto-detected when omitted.")
    parser.add_argument("--headed", action="store_true", help="Show the browser window.")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for the grid to be ready.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine activity.")
    return parser


async def _detect_grid(page: Page) -> str | None:
    raw = await page.evaluate(_ANCESTRY_JS)
    ancestry = [
        {str(key): str(value) for key, value in item.items() if value is not None}
        for item in raw or []
        if isinstance(item, dict)
    ]
    candidates = detect_grid_root_candidates(ancestry)
    for candidate in candidates:
        print(f"[inspectgrid doctor] root candidate {candidate.selector} ({candidate.reason})")
        if candidate.warning:
            print(f"[inspectgrid doctor]   warning: {candidate.warning}")
    return candidates[0].selector if candidates else None


async def _snapshot(args: argparse.Namespace) -> int:
    from playwright.async_api import async_playwright

    from .helper import grid

    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=not args.headed)
        except Exception as exc:
            if _is_missing_browser_error(exc):
                raise SystemExit("Chromium not installed. Run: python -m playwright install chromium") from exc
            raise
        try:
            page = await browser.new_page()
            await page.goto(args.url)
            reference = args.grid
            if not reference:
                await page.wait_for_selector(".ag-root-wrapper", timeout=args.timeout * 1000)
                reference = await _detect_grid(page)
                if reference is None:
                    print("[inspectgrid doctor] no AG Grid root found on the page", file=sys.stderr)
                    return 1

            helper = grid(page, {"selector": reference, "timeouts": {"grid_ready": args.timeout}})
            await helper.wait_for_ready()
            state = await helper.get_grid_state()
            print(f"[inspectgrid doctor] grid={helper.identity}")
            print(
                f"[inspectgrid doctor] total_rows={state.total_rows} visible_rows={state.visible_rows} "
                f"selected_rows={state.selected_rows} loading={state.is_loading}"
            )
            for sort in state.sorted_by:
                print(f"[inspectgrid doctor] sorted_by={sort.col_id} {sort.direction}")
            for row in await helper.get_all_visible_row_data():
                cells = ", ".join(f"{key}={value!r}" for key, value in row.cells.items())
                print(f"  [{row.stable_index}] id={row.row_id} {cells}")
        finally:
            await browser.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "inspectgrid requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return anyio.run(_snapshot, args)
    except GridError as exc:
        print(f"[inspectgrid doctor] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
