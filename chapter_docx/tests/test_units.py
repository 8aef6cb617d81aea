"""Test cases for unit conversions."""

import unittest

from chapter_docx.utils.units import (
    length_to_points,
    length_to_twips,
    pixels_to_emu,
    points_to_half_points,
    points_to_twips,
)


class UnitsTest(unittest.TestCase):
    """Test CSS length to WordprocessingML unit conversions."""

    def test_fixed_units(self):
        self.assertEqual(points_to_twips(12), 240)
        self.assertEqual(points_to_half_points(10.5), 21)
        self.assertEqual(pixels_to_emu(600), 5715000)
        self.assertEqual(length_to_twips(1, "in"), 1440)
        self.assertEqual(length_to_twips(48, "px"), 720)

    def test_relative_units(self):
        self.assertEqual(length_to_points(200, "%"), 22.0)
        self.assertIsNone(length_to_twips(10, "vw"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
