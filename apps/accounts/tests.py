from django.test import TestCase
from rest_framework.test import APIClient
from django.contrib.auth.models import User
from apps.accounts.models import Role


class AccountsApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="acct", password="pass1234")
        self.client.force_authenticate(user=self.user)

    def test_me_requires_auth(self):
        self.client.force_authenticate(user=None)
        resp = self.client.get("/api/v1/me/")
        self.assertEqual(resp.status_code, 401)

    def test_me_returns_basic_info_with_roles(self):
        role = Role.objects.create(name="Viewer")
        role.users.add(self.user)
        resp = self.client.get("/api/v1/me/")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data.get("username"), "acct")
        self.assertEqual(data.get("roles"), ["Viewer"])
