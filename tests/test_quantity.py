import unittest


class TestParseQuantity(unittest.TestCase):
    def assertParsed(self, text, qty, unit):
        from marketindex.quantity import parse_quantity

        parsed = parse_quantity(text)
        self.assertIsNotNone(parsed, text)
        self.assertAlmostEqual(parsed.qty, qty, msg=text)
        self.assertEqual(parsed.unit, unit, text)

    def test_ounce_phrases(self):
        self.assertParsed("3 oz gorilla cookies", 84, "g")
        self.assertParsed("1z lemon haze", 28, "g")
        self.assertParsed("1 eighth blue dream", 3.5, "g")
        self.assertParsed("quarter of og kush", 7, "g")
        self.assertParsed("half oz", 14, "g")
        self.assertParsed("zip of runtz", 28, "g")

    def test_fraction_is_not_read_as_whole_ounces(self):
        self.assertParsed("1/2 oz", 14, "g")
        self.assertParsed("1/8 oz", 3.5, "g")

    def test_multipack_grams(self):
        self.assertParsed("5 1g nasha", 5, "g")
        self.assertParsed("5 x 1g", 5, "g")
        self.assertParsed("2 3.5g", 7, "g")

    def test_grams_inside_packaging(self):
        self.assertParsed("1 jar 3.5g blue cookies", 3.5, "g")
        self.assertParsed("2 bags 7g", 7, "g")

    def test_leading_dosage(self):
        self.assertParsed("14 g 3 pm cut off", 14, "g")
        self.assertParsed("3.5g", 3.5, "g")
        self.assertParsed("1kg", 1000, "g")
        self.assertParsed("100mg", 100, "mg")
        self.assertParsed("10ml tincture", 10, "ml")

    def test_multiplier_times_dosage(self):
        self.assertParsed("10 x 25mg gummies", 250, "mg")

    def test_edible_potency_is_one_piece(self):
        self.assertParsed("100mg chocolate bar", 1, "bar")
        self.assertParsed("500mg milk choc", 1, "bar")

    def test_labeled_counts(self):
        self.assertParsed("2 items", 2, "item")
        self.assertParsed("3 gummies", 3, "gummy")
        self.assertParsed("5 pre-rolls", 5, "joint")
        self.assertParsed("2 jars", 2, "jar")
        self.assertParsed("4 tablets", 4, "tab")

    def test_bare_count_uses_implicit_unit(self):
        self.assertParsed("2 vape carts", 2, "cart")
        self.assertParsed("6 of the best", 6, "item")

    def test_item_words_without_number(self):
        self.assertParsed("gummies mixed flavours", 1, "gummy")

    def test_unparseable_returns_none(self):
        from marketindex.quantity import parse_quantity

        self.assertIsNone(parse_quantity(""))
        self.assertIsNone(parse_quantity("   "))
        self.assertIsNone(parse_quantity(None))
        self.assertIsNone(parse_quantity(42))
        self.assertIsNone(parse_quantity("blue dream"))

    def test_zero_quantity_returns_none(self):
        from marketindex.quantity import parse_quantity

        self.assertIsNone(parse_quantity("0g"))

    def test_case_insensitive(self):
        self.assertParsed("3 OZ Gorilla Cookies", 84, "g")

    def test_reparse_is_stable(self):
        from marketindex.quantity import parse_quantity

        for text in ("3 oz gorilla cookies", "10 x 25mg gummies", "blue dream"):
            self.assertEqual(parse_quantity(text), parse_quantity(text))


class TestQuantityHelpers(unittest.TestCase):
    def test_normalize_count_label(self):
        from marketindex.quantity import normalize_count_label

        self.assertEqual(normalize_count_label("tablets"), "tab")
        self.assertEqual(normalize_count_label("prerolls"), "joint")
        self.assertEqual(normalize_count_label("ounces"), "oz")
        self.assertEqual(normalize_count_label("widgets"), "widgets")
        self.assertIsNone(normalize_count_label(""))
        self.assertIsNone(normalize_count_label(None))

    def test_detect_implicit_unit_first_match_wins(self):
        from marketindex.quantity import detect_implicit_unit

        self.assertEqual(detect_implicit_unit("pack of gummies"), "pk")
        self.assertEqual(detect_implicit_unit("gummies in a jar"), "jar")
        self.assertEqual(detect_implicit_unit("disposable pen"), "pen")
        self.assertIsNone(detect_implicit_unit("blue dream"))

    def test_match_weight_breakpoint(self):
        from marketindex.quantity import match_weight_breakpoint

        self.assertEqual(match_weight_breakpoint(1.1), 1)
        self.assertEqual(match_weight_breakpoint(3.4), 3.5)
        self.assertEqual(match_weight_breakpoint(7), 7)
        self.assertEqual(match_weight_breakpoint(26), 28)
        self.assertEqual(match_weight_breakpoint(104), 100)
        self.assertIsNone(match_weight_breakpoint(3.9))
        self.assertIsNone(match_weight_breakpoint(20))
        self.assertIsNone(match_weight_breakpoint(None))
        self.assertIsNone(match_weight_breakpoint("3.5"))

    def test_is_gram_based_category(self):
        from marketindex.quantity import is_gram_based_category

        self.assertTrue(is_gram_based_category("Flower"))
        self.assertTrue(is_gram_based_category("Hash"))
        self.assertTrue(is_gram_based_category("Concentrates"))
        self.assertFalse(is_gram_based_category("Edibles"))
        self.assertFalse(is_gram_based_category("flower"))
        self.assertFalse(is_gram_based_category(None))


if __name__ == "__main__":
    unittest.main()
