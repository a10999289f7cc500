# tests/test_classifier.py
"""
Unit tests for GridEditor.core.classifier.

Run:
    python -m unittest tests.test_classifier
"""
import doctest
import unittest

from GridEditor.core import classifier
from GridEditor.core.classifier import Actionable, Editable, PhoneCall, classify, is_phone_number


class PhoneNumberTests(unittest.TestCase):
    def test_phone_numbers(self):
        for text in ('+91 98765 43210', '(555) 123-4567', '5551234', '123456789012345'):
            self.assertTrue(is_phone_number(text), f'{text!r} should be a phone number')

    def test_not_phone_numbers(self):
        for text in ('Hello World', '12345', '', '   ', '1234567890123456', '555-CALL-NOW', '٣٤٥٦٧٨٩٠'):
            self.assertFalse(is_phone_number(text), f'{text!r} should not be a phone number')

    def test_custom_bounds(self):
        self.assertTrue(is_phone_number('12345', min_digits=5))
        self.assertFalse(is_phone_number('5551234', max_digits=6))


class ClassifyTests(unittest.TestCase):
    def test_phone_is_actionable(self):
        intent = classify('+91 98765 43210')
        self.assertEqual(intent, Actionable(PhoneCall('+919876543210')))
        self.assertEqual(intent.action.uri, 'tel:+919876543210')

    def test_number_without_plus(self):
        self.assertEqual(classify('(555) 123-4567'), Actionable(PhoneCall('5551234567')))

    def test_text_is_editable(self):
        self.assertEqual(classify('Hello World'), Editable())
        self.assertEqual(classify('12345'), Editable())
        self.assertEqual(classify(''), Editable())


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(classifier))
    return tests
