"""
db_gateway.static_site.generator

Pre-renders HTML pages from sampled database rows.

Layout under the output directory, per abbreviation:
- `<abbr>.html`: overview (database, engine, page count) with links to every data page.
- `<abbr>/pages/<abbr>-<n>.html`: one fresh random sample per page, embedded as
  JSON between `<!-- DATA_START -->` / `<!-- DATA_END -->` markers.

A failing page is logged and skipped; the build carries on with the next one.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from db_gateway.db.config import DatabaseConfig
from db_gateway.db.manager import DEFAULT_SAMPLE_LIMIT, DatabaseManager
from db_gateway.errors import GatewayError
from db_gateway.observability.logging import get_logger

log = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
PAGE_TEMPLATE = "page.html.j2"
DEFAULT_PAGES_PER_DATABASE = 100


@dataclass(slots=True)
class BuildReport:
    pages_written: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class StaticPageGenerator:
    def __init__(
        self,
        manager: DatabaseManager,
        output_dir: Path | str,
        *,
        pages_per_database: int = DEFAULT_PAGES_PER_DATABASE,
        limit: int = DEFAULT_SAMPLE_LIMIT,
    ) -> None:
        self._manager = manager
        self._output_dir = Path(output_dir)
        self._pages = pages_per_database
        self._limit = limit
        self._env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)

    def render_page(self, data: Any, database: str, page_number: int | None = None) -> str:
        title = f"{database} - Page {page_number}" if page_number else f"{database} - Overview"
        return self._env.get_template(PAGE_TEMPLATE).render(
            title=title,
            database=database,
            page_number=page_number,
            total_pages=self._pages,
            payload=json.dumps(data, indent=2, ensure_ascii=False, default=str),
        )

    async def generate_all(self) -> BuildReport:
        report = BuildReport()
        self._output_dir.mkdir(parents=True, exist_ok=True)
        for abbr, config in self._manager.configs.items():
            log.info("generating_database", database=abbr)
            await self.generate_database(config, report)
            log.info("database_complete", database=abbr)
        log.info("build_complete", pages=report.pages_written, failures=len(report.failures))
        return report

    async def generate_database(self, config: DatabaseConfig, report: BuildReport) -> None:
        abbr = config.abbreviation
        pages_dir = self._output_dir / abbr / "pages"
        pages_dir.mkdir(parents=True, exist_ok=True)

        overview = {
            "database": abbr,
            "type": config.engine.value,
            "description": f"Overview page for {abbr} database",
            "totalPages": self._pages,
        }
        self._write(self._output_dir / f"{abbr}.html", self.render_page(overview, abbr))
        report.pages_written += 1

        for page in range(1, self._pages + 1):
            try:
                # Bypass the cache: every page should carry its own draw.
                data = await self._manager.get_random_data(abbr, self._limit, use_cache=False)
                self._write(pages_dir / f"{abbr}-{page}.html", self.render_page(data, abbr, page))
                report.pages_written += 1
            except (GatewayError, OSError) as e:
                log.error("page_failed", database=abbr, page=page, error=str(e))
                report.failures.append(f"{abbr}-{page}: {e}")

    @staticmethod
    def _write(path: Path, html: str) -> None:
        path.write_text(html, encoding="utf-8")
