import unittest

from orace.layout import layout_from_dict
from orace.model import CompetencyKey, Grid
from orace.rows import locate_first_data_row, map_row
from orace.spans import resolve_spans

from helpers import export_grid, export_rows, scenario_grid

LECTURE = CompetencyKey("CE1", "francais", "Lecture_de_mots_10_points")
COMPREHENSION = CompetencyKey("CE1", "francais", "Comprehension_de_phrases_lues_par_lenseignant")


class FirstDataRowTests(unittest.TestCase):
    def test_export_layout(self):
        self.assertEqual(locate_first_data_row(export_grid(), 7), 10)
        self.assertEqual(locate_first_data_row(scenario_grid(), 7), 11)

    def test_header_like_rows_are_skipped(self):
        rows = [[""] * 4 for _ in range(12)]
        rows[8] = ["Code UAI de l'école", "Nom de l'école", "", ""]
        rows[9] = ["0070116", "", "", ""]
        rows[10] = ["Total circonscription", "Privas", "", ""]
        rows[11] = ["0070116N", "Ecole Test", "", ""]
        self.assertEqual(locate_first_data_row(Grid.from_rows(rows), 7), 11)

    def test_short_identifier_is_not_a_school(self):
        rows = [[""] * 3 for _ in range(10)]
        rows.append(["007011", "Ecole Test", ""])
        rows.append(["0070116", "Ecole Test", ""])
        self.assertEqual(locate_first_data_row(Grid.from_rows(rows), 7), 11)

    def test_default_when_nothing_looks_like_a_school(self):
        rows = [[""] * 3 for _ in range(14)]
        with self.assertLogs("orace.rows", level="WARNING"):
            self.assertEqual(locate_first_data_row(Grid.from_rows(rows), 7), 10)

        layout = layout_from_dict({"default_data_row": 12})
        self.assertEqual(locate_first_data_row(Grid.from_rows(rows), 7, layout), 12)


class MapRowTests(unittest.TestCase):
    def setUp(self):
        self.grid = export_grid()
        self.spans, _ = resolve_spans(self.grid, 6, 7)

    def test_school_row(self):
        rec = map_row(self.grid.row(10), self.spans, "CE1", "francais")
        self.assertEqual(rec.id, "0070116N")
        self.assertEqual(rec.name, "Ecole Test")
        self.assertEqual(rec.results, {LECTURE: 62.5, COMPREHENSION: 40.0})

    def test_fraction_is_scaled(self):
        rec = map_row(self.grid.row(11), self.spans, "CE1", "francais")
        self.assertEqual(rec.results, {LECTURE: 50.0, COMPREHENSION: 75.0})

    def test_blank_and_garbage_cells_are_omitted(self):
        unparsable = []
        rec = map_row(self.grid.row(12), self.spans, "CE1", "francais", unparsable=unparsable)
        self.assertIsNotNone(rec)
        self.assertEqual(rec.results, {})
        # the blank cell is missing data, "n.c." is unparsable
        self.assertEqual(unparsable, [COMPREHENSION])

    def test_trailer_and_blank_rows(self):
        trailer = self.grid.row(self.grid.n_rows - 1)
        self.assertIsNone(map_row(trailer, self.spans, "CE1", "francais"))
        self.assertIsNone(map_row(["", "Ecole sans UAI", "", "", "", "", "", "50"], self.spans, "CE1", "francais"))
        self.assertIsNone(map_row([], self.spans, "CE1", "francais"))
        self.assertIsNone(map_row(["CIRCONSCRIPTION PRIVAS", "x"], self.spans, "CE1", "francais"))

    def test_short_row(self):
        # value columns past the end of the row are missing, not errors
        rec = map_row(["0070116N", "Ecole Test", "", "", "", "", "", "55"], self.spans, "CE1", "francais")
        self.assertEqual(rec.results, {LECTURE: 55.0})

    def test_key_length_is_bounded(self):
        long_title = "Comprendre " + "des textes très longs " * 10
        rows = export_rows(competencies=[long_title], schools=[("0070116N", "Ecole Test", ["12"])])
        grid = Grid.from_rows(rows)
        spans, _ = resolve_spans(grid, 6, 7)
        rec = map_row(grid.row(10), spans, "CE1", "francais")
        (key,) = rec.results
        self.assertEqual(len(key.name), 100)
        self.assertNotIn(" ", key.name)


if __name__ == "__main__":
    unittest.main()
