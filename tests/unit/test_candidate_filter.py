"""Unit tests for feed candidate filtering."""

from seriesledger.core.candidate_filter import MB, CandidateFilter, item_matches
from seriesledger.models.schemas import CandidateItem


def _item(title="Show.S01E01.1080p.WEB-DL", size=0) -> CandidateItem:
    return CandidateItem(title=title, link="http://example.com/t.torrent", guid=title, size=size)


class TestItemMatches:
    def test_empty_filter_accepts_everything(self):
        assert item_matches(_item(), CandidateFilter())

    def test_all_keywords_required(self):
        assert item_matches(_item(), CandidateFilter(keywords="1080p, web"))
        assert not item_matches(_item(), CandidateFilter(keywords="1080p,hevc"))

    def test_any_exclude_rejects(self):
        assert not item_matches(_item(), CandidateFilter(exclude="cam, web-dl"))

    def test_size_bounds(self):
        item = _item(size=700 * MB)
        assert item_matches(item, CandidateFilter(size_min=500, size_max=1000))
        assert not item_matches(item, CandidateFilter(size_min=800))
        assert not item_matches(item, CandidateFilter(size_max=600))

    def test_unknown_size_skips_bounds(self):
        assert item_matches(_item(size=0), CandidateFilter(size_min=800))

    def test_smart_regex(self):
        config = CandidateFilter(smart_regex=r"Show.*S0?1.*1080[pi]")
        assert item_matches(_item(), config)
        assert not item_matches(_item("Show.S02E01.1080p"), config)

    def test_invalid_regex_is_ignored(self):
        assert item_matches(_item(), CandidateFilter(smart_regex="Show(["))
