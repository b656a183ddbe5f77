import unittest
from unittest import mock

from http_fakes import fake_session, make_response, make_settings
from workspace_api.google.admin import ROLE_REPORT_HEADERS, AdminClient
from workspace_api.google.client import GoogleClient
from workspace_api.utils.errors import HTTPStatusError

DIRECTORY = "https://admin.googleapis.com/admin/directory/v1"

ROLES = [
    {"roleId": "1", "roleName": "_SEED_ADMIN_ROLE"},
    {"roleId": "2", "roleName": "Help Desk"},
    {"roleId": "3", "roleName": "_GCDS_DIRECTORY_MANAGEMENT_ROLE"},
]

ASSIGNMENTS = {
    "1": [{"roleId": "1", "assignedTo": "u1", "assigneeType": "user"}],
    "2": [
        {"roleId": "2", "assignedTo": "u1", "assigneeType": "user"},
        {"roleId": "2", "assignedTo": "u2", "assigneeType": "user"},
        {"roleId": "2", "assignedTo": "g1", "assigneeType": "group"},
    ],
}

USERS = {
    "u1": {"id": "u1", "primaryEmail": "ann@acme.com", "name": {"fullName": "Ann"}, "suspended": False},
    "u2": {"id": "u2", "primaryEmail": "bob@acme.com", "name": {"fullName": "Bob"}, "suspended": True},
}


def directory_handler(method, url, params, body):
    if url == f"{DIRECTORY}/customer/my_customer/roles":
        return make_response(200, {"items": ROLES})
    if url == f"{DIRECTORY}/customer/my_customer/roles/2":
        return make_response(200, ROLES[1])
    if url == f"{DIRECTORY}/customer/my_customer/roleassignments":
        return make_response(200, {"items": ASSIGNMENTS.get(params["roleId"], [])})
    if url.startswith(f"{DIRECTORY}/users/"):
        return make_response(200, USERS[url.rsplit("/", 1)[1]])
    return make_response(404, {"error": {"message": f"unexpected {url}"}})


def make_client():
    session = fake_session(handler=directory_handler)
    return GoogleClient(settings=make_settings(), auth=mock.Mock(), session=session), session


class TestRoleReport(unittest.TestCase):
    def test_generate_role_report(self):
        client, session = make_client()

        reports = client.admin.generate_role_report()

        self.assertEqual([r["role"]["roleName"] for r in reports], ["_SEED_ADMIN_ROLE", "Help Desk"])
        self.assertEqual([u["id"] for u in reports[0]["users"]], ["u1"])
        self.assertEqual([u["id"] for u in reports[1]["users"]], ["u1", "u2"])

        user_calls = [c for c in session.request.call_args_list if "/users/" in c.args[1]]
        self.assertEqual(len(user_calls), 2)

    def test_single_role(self):
        client, _ = make_client()
        reports = client.admin.generate_role_report(role_id="2")
        self.assertEqual(len(reports), 1)
        self.assertEqual(len(reports[0]["users"]), 2)

    def test_group_assignees_are_not_resolved(self):
        client, _ = make_client()
        users = client.admin.users_from_role_assignments(ASSIGNMENTS["2"])
        self.assertEqual([u["id"] for u in users], ["u1", "u2"])

    def test_errors_propagate(self):
        client, _ = make_client()
        with self.assertRaises(HTTPStatusError):
            client.admin.generate_role_report(customer="unknown")

    def test_rows(self):
        reports = [{"role": {"roleName": "Help Desk"}, "users": [USERS["u2"]]}]
        rows = AdminClient.role_report_rows(reports)
        self.assertEqual(rows[0], ROLE_REPORT_HEADERS)
        self.assertEqual(rows[1], ["Bob", "bob@acme.com", "Help Desk", "", "", "true", "false"])

    def test_save_role_report(self):
        session = fake_session(
            make_response(200, {"spreadsheetId": "s1"}),
            make_response(200, {"updatedRows": 2}),
        )
        client = GoogleClient(settings=make_settings(), auth=mock.Mock(), session=session)

        spreadsheet = client.admin.save_role_report([{"role": {"roleName": "R"}, "users": [USERS["u1"]]}])

        self.assertEqual(spreadsheet["spreadsheetId"], "s1")
        update = session.request.call_args
        self.assertEqual(update.args[0], "PUT")
        self.assertEqual(len(update.kwargs["json"]["values"]), 2)

    def test_my_customer_is_cached(self):
        session = fake_session(make_response(200, {"id": "C0123"}))
        client = GoogleClient(settings=make_settings(), auth=mock.Mock(), session=session)
        self.assertEqual(client.admin.my_customer()["id"], "C0123")
        self.assertEqual(client.admin.my_customer()["id"], "C0123")
        self.assertEqual(session.request.call_count, 1)


if __name__ == "__main__":
    unittest.main()
