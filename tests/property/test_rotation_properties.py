"""Property tests for durable resource rotation.

Validates the cyclic proxy sequence across simulated process restarts,
consume-and-remove accounting on the destination queue, and that drawing
from a queue with no eligible lines never rewrites it.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from profilegate.rotation.rotator import ResourceRotator
from profilegate.rotation.store import FileIndexStore, LineQueueStore, ProxyListStore, split_lines
from profilegate.rotation.types import Drawn, Exhausted


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

proxy_counts = st.integers(min_value=1, max_value=8)
run_counts = st.integers(min_value=0, max_value=30)

urls = st.from_regex(r"https://[a-z]{3,10}\.test/[a-z0-9]{0,8}", fullmatch=True)
# Comments may hold vertical tabs and form feeds, which are not line breaks here
comments = st.from_regex(r"#[ a-z0-9\x0b\x0c]{0,20}", fullmatch=True)
blanks = st.sampled_from(["", "   ", "\t"])

# Queue files mixing eligible URLs with comments and blank lines
queue_lines = st.lists(st.one_of(urls, comments, blanks), min_size=0, max_size=15)
ineligible_lines = st.lists(st.one_of(comments, blanks), min_size=0, max_size=10)
line_endings = st.sampled_from(["\n", "\r\n"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_proxies(directory: Path, count: int) -> ProxyListStore:
    path = directory / "proxies.json"
    path.write_text(
        json.dumps([{"host": f"10.0.0.{i}", "port": 1080 + i} for i in range(count)]),
        encoding="utf-8",
    )
    return ProxyListStore(path)


def _write_queue(directory: Path, lines: list[str], ending: str, trailing: bool) -> Path:
    path = directory / "destinations.txt"
    content = ending.join(lines) + (ending if trailing and lines else "")
    path.write_bytes(content.encode("utf-8"))
    return path


# ---------------------------------------------------------------------------
# Cyclic proxy rotation survives restarts
# ---------------------------------------------------------------------------


@settings(max_examples=50, deadline=None)
@given(count=proxy_counts, runs=run_counts)
def test_proxy_sequence_is_cyclic_across_restarts(count: int, runs: int) -> None:
    """Run k uses proxy k mod N, with a fresh rotator per run."""
    with tempfile.TemporaryDirectory() as tmp:
        directory = Path(tmp)
        proxy_store = _write_proxies(directory, count)
        index_path = directory / "proxy_index.txt"
        destinations = LineQueueStore(directory / "destinations.txt")

        hosts = []
        for _ in range(runs):
            rotator = ResourceRotator(proxy_store, FileIndexStore(index_path), destinations)
            hosts.append(rotator.next_proxy().host)

        assert hosts == [f"10.0.0.{k % count}" for k in range(runs)]
        if runs:
            assert int(index_path.read_text()) == runs % count


# ---------------------------------------------------------------------------
# Consume-and-remove accounting
# ---------------------------------------------------------------------------


@settings(max_examples=75, deadline=None)
@given(
    lines=queue_lines,
    ending=line_endings,
    trailing=st.booleans(),
    draws=st.integers(min_value=0, max_value=20),
)
def test_consuming_k_of_m_leaves_the_rest_in_order(
    lines: list[str], ending: str, trailing: bool, draws: int
) -> None:
    """After k draws from M eligible lines, the first min(k, M) are gone and the rest remain."""
    with tempfile.TemporaryDirectory() as tmp:
        path = _write_queue(Path(tmp), lines, ending, trailing)
        store = LineQueueStore(path)
        original = split_lines(path.read_bytes().decode("utf-8"))
        eligible = [line.strip() for line in original if line.strip() and not line.strip().startswith("#")]
        ineligible = [line for line in original if not line.strip() or line.strip().startswith("#")]

        drawn = [store.consume_first() for _ in range(draws)]

        taken = min(draws, len(eligible))
        assert drawn[:taken] == eligible[:taken]
        assert all(item is None for item in drawn[taken:])
        assert store.peek_lines() == eligible[taken:]

        # Comments and blank lines are never consumed
        remaining = split_lines(path.read_bytes().decode("utf-8"))
        assert [line for line in remaining if not line.strip() or line.strip().startswith("#")] == ineligible


@settings(max_examples=50, deadline=None)
@given(lines=ineligible_lines, ending=line_endings, trailing=st.booleans())
def test_no_eligible_lines_leaves_file_byte_identical(
    lines: list[str], ending: str, trailing: bool
) -> None:
    with tempfile.TemporaryDirectory() as tmp:
        directory = Path(tmp)
        path = _write_queue(directory, lines, ending, trailing)
        before = path.read_bytes()
        rotator = ResourceRotator(
            _write_proxies(directory, 1),
            FileIndexStore(directory / "proxy_index.txt"),
            LineQueueStore(path),
        )

        assert isinstance(rotator.next_destination(), Exhausted)
        assert path.read_bytes() == before


@settings(max_examples=50, deadline=None)
@given(lines=queue_lines, ending=line_endings)
def test_draw_result_matches_store_state(lines: list[str], ending: str) -> None:
    """A draw is Drawn exactly when the queue had an eligible line."""
    with tempfile.TemporaryDirectory() as tmp:
        directory = Path(tmp)
        path = _write_queue(directory, lines, ending, trailing=True)
        queue = LineQueueStore(path)
        had_eligible = queue.count_eligible() > 0
        rotator = ResourceRotator(
            _write_proxies(directory, 1),
            FileIndexStore(directory / "proxy_index.txt"),
            queue,
        )

        result = rotator.next_destination()

        assert isinstance(result, Drawn) == had_eligible
