from django.test import TestCase

from apps.contacts.models import Contact


class ContactTests(TestCase):
    def test_display_name_fallbacks(self):
        self.assertEqual(Contact(name="Dana Scully", email="dana@example.com").display_name, "Dana Scully")
        self.assertEqual(Contact(email="fox.mulder@example.com").display_name, "fox.mulder")
        self.assertEqual(Contact().display_name, "Unknown")

    def test_tag_names_ignore_blanks(self):
        self.assertEqual(Contact(tags="").tag_names, [])
        self.assertEqual(Contact(tags="@26 Conference Exhibitor,,").tag_names, ["26 Conference Exhibitor"])
