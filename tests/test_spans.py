import unittest

from orace.model import CompetencySpan, Grid, MergeSpan
from orace.spans import (
    MODE_ANCHOR,
    MODE_MERGE,
    AnchorScanResolver,
    MergeAwareResolver,
    check_offsets,
    resolve_spans,
    resolve_value_column,
    select_resolver,
)

from helpers import COMPETENCIES, export_grid, export_rows, scenario_grid

GROUP_ROW = 6
PCT_ROW = 7


class MergeAwareTests(unittest.TestCase):
    def test_spans_follow_title_merges(self):
        grid = export_grid(with_merges=True)
        self.assertIsInstance(select_resolver(grid), MergeAwareResolver)
        spans, mode = resolve_spans(grid, GROUP_ROW, PCT_ROW)
        self.assertEqual(mode, MODE_MERGE)
        self.assertEqual(
            [(s.name, s.column_start, s.column_end, s.resolved_value_column) for s in spans],
            [(COMPETENCIES[0], 2, 7, 7), (COMPETENCIES[1], 8, 13, 13)],
        )
        self.assertTrue(all(s.confident for s in spans))

    def test_degrades_to_anchor_scan_without_title_merges(self):
        rows = export_rows()
        grid = Grid.from_rows(rows, merges=[MergeSpan(0, 0, 0, 5), MergeSpan(6, 6, 2, 3)])
        spans, mode = resolve_spans(grid, GROUP_ROW, PCT_ROW)
        self.assertEqual(mode, MODE_ANCHOR)
        self.assertEqual([s.resolved_value_column for s in spans], [7, 13])

    def test_structural_merge_is_skipped(self):
        rows = export_rows()
        rows[2][0] = "Compétences évaluées"
        merges = [MergeSpan(2, 2, 0, 1), MergeSpan(2, 2, 2, 7), MergeSpan(2, 2, 8, 13)]
        spans = MergeAwareResolver().resolve(Grid.from_rows(rows, merges=merges), GROUP_ROW, PCT_ROW)
        self.assertEqual([s.name for s in spans], COMPETENCIES)


class AnchorScanTests(unittest.TestCase):
    def test_same_spans_as_merge_aware(self):
        merged, _ = resolve_spans(export_grid(with_merges=True), GROUP_ROW, PCT_ROW)
        scanned, mode = resolve_spans(export_grid(), GROUP_ROW, PCT_ROW)
        self.assertEqual(mode, MODE_ANCHOR)
        self.assertEqual(scanned, merged)

    def test_last_span_runs_to_last_column(self):
        grid = export_grid()
        spans = AnchorScanResolver().resolve(grid, GROUP_ROW, PCT_ROW)
        self.assertEqual(spans[-1].column_end, grid.n_cols - 1)

    def test_single_competency_scenario(self):
        spans, _ = resolve_spans(scenario_grid(), GROUP_ROW, PCT_ROW)
        self.assertEqual(len(spans), 1)
        self.assertEqual((spans[0].column_start, spans[0].column_end), (2, 5))
        self.assertEqual(spans[0].resolved_value_column, 5)
        self.assertEqual(spans[0].offset, 3)

        merged, mode = resolve_spans(scenario_grid(with_merges=True), GROUP_ROW, PCT_ROW)
        self.assertEqual(mode, MODE_MERGE)
        self.assertEqual(merged, spans)

    def test_value_column_stays_inside_span(self):
        for grid in (export_grid(), export_grid(with_merges=True), scenario_grid()):
            spans, _ = resolve_spans(grid, GROUP_ROW, PCT_ROW)
            for s in spans:
                self.assertTrue(s.column_start <= s.resolved_value_column <= s.column_end)


class ValueColumnTests(unittest.TestCase):
    def test_missing_group_label_falls_back_to_last_column(self):
        rows = export_rows()
        rows[GROUP_ROW][6] = ""
        span = resolve_value_column(Grid.from_rows(rows), "X", 2, 7, GROUP_ROW, PCT_ROW)
        self.assertFalse(span.confident)
        self.assertEqual(span.resolved_value_column, 7)

    def test_missing_percentage_marker_falls_back_to_last_column(self):
        rows = export_rows()
        rows[PCT_ROW][7] = ""
        with self.assertLogs("orace.spans", level="WARNING"):
            span = resolve_value_column(Grid.from_rows(rows), "X", 2, 7, GROUP_ROW, PCT_ROW)
        self.assertFalse(span.confident)
        self.assertEqual(span.resolved_value_column, 7)

    def test_percentage_on_group_column(self):
        rows = [[""] * 6 for _ in range(8)]
        rows[GROUP_ROW][3] = "Satisfaisant"
        rows[PCT_ROW][3] = "% répondants"
        span = resolve_value_column(Grid.from_rows(rows), "X", 2, 5, GROUP_ROW, PCT_ROW)
        self.assertTrue(span.confident)
        self.assertEqual(span.resolved_value_column, 3)


class OffsetCheckTests(unittest.TestCase):
    def test_regular(self):
        spans, _ = resolve_spans(export_grid(), GROUP_ROW, PCT_ROW)
        self.assertTrue(check_offsets(spans))
        self.assertTrue(check_offsets([]))

    def test_irregular_is_reported(self):
        spans = [CompetencySpan("A", 2, 7, 7), CompetencySpan("B", 8, 13, 12)]
        with self.assertLogs("orace.spans", level="WARNING"):
            self.assertFalse(check_offsets(spans))


if __name__ == "__main__":
    unittest.main()
