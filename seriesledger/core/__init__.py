"""Core modules for SeriesLedger."""

from seriesledger.core.episode_parser import parse
from seriesledger.core.file_selector import select_files
from seriesledger.core.title_matcher import title_matches

__all__ = ["parse", "select_files", "title_matches"]
