#!/usr/bin/env python3
"""
Unit tests for the field extractors.
This uses Python's built-in unittest framework.
"""
import unittest

from ecaytracker.extractors import (
    extract_external_id,
    extract_location,
    extract_mileage,
    extract_title,
    extract_year,
    normalise_currency,
    parse_card,
    parse_price,
    split_make_model,
)
from ecaytracker.models import RawCard


class TestPriceParsing(unittest.TestCase):
    """Currency markers and amounts."""

    def test_all_markers_normalise(self):
        """CI/KYD markers map to KYD and US markers to USD, with or without '$'."""
        expected = {
            "CI$": "KYD", "KYD$": "KYD", "US$": "USD",
            "CI": "KYD", "KYD": "KYD", "US": "USD",
            "ci$": "KYD", "kyd": "KYD", "us$": "USD",
        }
        for marker, currency in expected.items():
            with self.subTest(marker=marker):
                price, cur = parse_price(f"{marker} 12,500")
                self.assertEqual(price, 12500.0)
                self.assertEqual(cur, currency)

    def test_amount_without_space_and_decimals(self):
        price, currency = parse_price("CI$5,000.50")
        self.assertEqual(price, 5000.5)
        self.assertEqual(currency, "KYD")

    def test_first_match_wins(self):
        price, currency = parse_price("US$ 16,000 or CI$ 13,000")
        self.assertEqual(price, 16000.0)
        self.assertEqual(currency, "USD")

    def test_bare_ci_marker_counts_as_first_match(self):
        price, currency = parse_price("2018 Toyota CI 2500 spent on tires\nCI$ 15,000")
        self.assertEqual(price, 2500.0)
        self.assertEqual(currency, "KYD")

    def test_no_price(self):
        self.assertEqual(parse_price("Call for details"), (None, None))
        self.assertEqual(parse_price(""), (None, None))

    def test_unknown_marker_kept_uppercase(self):
        self.assertEqual(normalise_currency("eur"), "EUR")


class TestYear(unittest.TestCase):
    def test_last_year_wins(self):
        self.assertEqual(extract_year("2018 Toyota Camry, previously 2015 model"), 2015)

    def test_single_year(self):
        self.assertEqual(extract_year("Honda Fit 2012"), 2012)

    def test_no_year(self):
        self.assertIsNone(extract_year("Toyota Camry"))
        self.assertIsNone(extract_year("Part number 12019"))


class TestLocation(unittest.TestCase):
    def test_title_cased(self):
        self.assertEqual(extract_location("Automatic · 2018 · on island"), "On Island")
        self.assertEqual(extract_location("Located in GEORGE TOWN"), "George Town")

    def test_absent(self):
        self.assertIsNone(extract_location("Somewhere nice"))


class TestMileage(unittest.TestCase):
    """Tier order and sanity band."""

    def test_labelled_beats_bare_unit(self):
        text = "Mileage: 45,000\nTires: 2,000 psi... 17,000 km"
        self.assertEqual(extract_mileage(text), 45000)

    def test_odometer_label(self):
        self.assertEqual(extract_mileage("Odometer 80000 km"), 80000)

    def test_bare_unit(self):
        self.assertEqual(extract_mileage("Clean car, 85,600 km, one owner"), 85600)
        self.assertEqual(extract_mileage("only 60000 miles"), 60000)

    def test_unit_after_number_is_not_a_label(self):
        self.assertEqual(extract_mileage("85,600 km - 2015 Honda Accord"), 85600)
        self.assertEqual(extract_mileage("60000 miles: 2012 Honda Fit"), 60000)
        self.assertEqual(extract_mileage("Km: 12,000"), 12000)

    def test_approximate_qualifier(self):
        self.assertEqual(extract_mileage("Over 100,000 on the clock"), 100000)
        self.assertEqual(extract_mileage("approx. 90000"), 90000)

    def test_tilde_qualifier(self):
        self.assertEqual(extract_mileage("~ 90,000 on the clock"), 90000)
        self.assertEqual(extract_mileage("runs great, ~75000"), 75000)

    def test_out_of_band_is_absent_not_clamped(self):
        self.assertIsNone(extract_mileage("Mileage: 50"))
        self.assertIsNone(extract_mileage("3,000,000 km"))

    def test_out_of_band_falls_through_to_next_tier(self):
        self.assertEqual(extract_mileage("Mileage: 12\nabout 60,000 miles"), 60000)

    def test_no_mileage(self):
        self.assertIsNone(extract_mileage("Great condition"))
        self.assertIsNone(extract_mileage(""))

    def test_idempotent(self):
        text = "Mileage: 45,000 and 17,000 km"
        self.assertEqual(extract_mileage(text), extract_mileage(text))


class TestTitle(unittest.TestCase):
    def test_skips_price_and_chip_lines(self):
        text = "CI$ 25,000\nAutomatic · 2018 · On Island\n2018 Toyota Camry SE"
        self.assertEqual(extract_title(text), "2018 Toyota Camry SE")

    def test_long_line_with_price_is_kept(self):
        text = "2019 Honda CR-V EX for sale CI$ 25,000"
        self.assertEqual(extract_title(text), text)

    def test_fallback_to_collapsed_text(self):
        text = "Automatic  ·  2018 ·\tOn Island"
        self.assertEqual(extract_title(text), "Automatic · 2018 · On Island")

    def test_fallback_truncates(self):
        text = "· " + "x" * 100
        self.assertEqual(len(extract_title(text)), 60)


class TestMakeModel(unittest.TestCase):
    def test_known_make(self):
        self.assertEqual(split_make_model("2018 Toyota Camry SE"), ("Toyota", "Camry SE"))

    def test_multi_word_make(self):
        self.assertEqual(split_make_model("Land Rover Defender 110"), ("Land Rover", "Defender 110"))

    def test_hyphenated_make(self):
        self.assertEqual(split_make_model("2017 Mercedes-Benz C300"), ("Mercedes-Benz", "C300"))

    def test_case_insensitive(self):
        self.assertEqual(split_make_model("HONDA civic"), ("Honda", "civic"))

    def test_unknown_make_first_word(self):
        self.assertEqual(split_make_model("Custom Buggy Thing"), ("Custom", "Buggy Thing"))

    def test_single_word(self):
        self.assertEqual(split_make_model("Tractor"), ("Tractor", ""))

    def test_empty(self):
        self.assertEqual(split_make_model(""), ("", ""))
        self.assertEqual(split_make_model("2019"), ("", "2019"))


class TestCardParsing(unittest.TestCase):
    def test_external_id(self):
        self.assertEqual(extract_external_id("https://ecaytrade.com/advert/12345"), "12345")
        self.assertEqual(extract_external_id("https://ecaytrade.com/autos"), "")

    def test_full_card(self):
        card = RawCard(
            url="https://ecaytrade.com/advert/555",
            text="2018 Toyota Camry SE\nCI$ 18,500\nAutomatic · Gasoline · On Island\n45,000 km",
            image_url="https://img.example/555.jpg",
        )
        listing = parse_card(card)
        self.assertEqual(listing.external_id, "555")
        self.assertEqual(listing.title, "2018 Toyota Camry SE")
        self.assertEqual(listing.make, "Toyota")
        self.assertEqual(listing.model, "Camry SE")
        self.assertEqual(listing.year, 2018)
        self.assertEqual(listing.price, 18500.0)
        self.assertEqual(listing.currency, "KYD")
        self.assertEqual(listing.mileage, 45000)
        self.assertEqual(listing.location, "On Island")
        self.assertEqual(listing.transmission, "Automatic")
        self.assertEqual(listing.fuel_type, "Gasoline")
        self.assertEqual(listing.images, ["https://img.example/555.jpg"])
        self.assertTrue(listing.is_active)
        self.assertIsNone(listing.first_seen)

    def test_card_without_fields(self):
        listing = parse_card(RawCard(url="https://ecaytrade.com/advert/1", text=""))
        self.assertEqual(listing.title, "")
        self.assertEqual(listing.price, 0.0)
        self.assertEqual(listing.currency, "")
        self.assertIsNone(listing.year)
        self.assertIsNone(listing.mileage)
        self.assertEqual(listing.images, [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
