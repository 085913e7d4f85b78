from __future__ import annotations

import csv
import io
import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from rich.console import Console

from conftest import MemorySecretStore, json_response, list_payload
from dcprov.cli import cli, main
from dcprov.commands import range_summary
from dcprov.commands.customer import prompt_new_customer
from dcprov.exceptions import (
    CredentialNotFound,
    DcProvUsageError,
    InvalidFilterSyntax,
    InvalidRange,
    PageFetchError,
)
from dcprov.paginator import Page
from dcprov.query import build_query

URL = "dracoon.example.com"
DOMAIN = "https://dracoon.example.com"
LIST_URL = f"{DOMAIN}/api/v4/provisioning/customers"


def customers(start, count):
    return [
        {
            "id": i,
            "companyName": f"DRACOON {i}",
            "customerContractType": "pay",
            "quotaMax": 1024,
            "quotaUsed": 0,
            "userMax": 10,
            "userUsed": 1,
            "createdAt": "2024-01-01T00:00:00Z",
            "isLocked": False,
        }
        for i in range(start, start + count)
    ]


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def stored(memory_store):
    memory_store.entries[DOMAIN] = "stored-token"
    return memory_store


def invoke(cli_runner, runtime, args, **kwargs):
    return cli_runner.invoke(cli, args, obj=runtime, **kwargs)


class TestList:
    @patch("dcprov.api.requests.request")
    def test_filter_sort_all_csv_across_three_pages(self, mock_request, cli_runner, runtime, stored):
        mock_request.side_effect = [
            json_response(list_payload(customers(0, 2), total=5, offset=0)),
            json_response(list_payload(customers(2, 2), total=5, offset=2)),
            json_response(list_payload(customers(4, 1), total=5, offset=4)),
        ]

        result = invoke(
            cli_runner,
            runtime,
            [
                "list",
                URL,
                "--filter",
                "companyName:cn:DRACOON",
                "--sort",
                "companyName:asc",
                "--all",
                "--csv",
            ],
        )

        assert result.exit_code == 0, result.output
        rows = list(csv.reader(io.StringIO(result.stdout)))
        assert rows[0][:2] == ["id", "companyName"]
        assert [row[1] for row in rows[1:]] == [f"DRACOON {i}" for i in range(5)]

        params = [call[1]["params"] for call in mock_request.call_args_list]
        assert [p["offset"] for p in params] == [0, 2, 4]
        assert all(p["filter"] == "companyName:cn:DRACOON" for p in params)
        assert all(p["sort"] == "companyName:asc" for p in params)
        assert all(call[0][1] == LIST_URL for call in mock_request.call_args_list)
        headers = mock_request.call_args[1]["headers"]
        assert headers["X-Sds-Service-Token"] == "stored-token"

    @patch("dcprov.api.requests.request")
    def test_single_page_pretty(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(list_payload(customers(0, 2), total=50))

        result = invoke(cli_runner, runtime, ["list", URL, "--limit", "2"])

        assert result.exit_code == 0, result.output
        assert "DRACOON 0" in result.output
        assert "DRACOON 1" in result.output
        assert mock_request.call_count == 1
        assert mock_request.call_args[1]["params"] == {"offset": 0, "limit": 2}

    @patch("dcprov.api.requests.request")
    def test_pretty_reports_server_range(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(
            list_payload(customers(10, 2), total=50, offset=10, limit=2)
        )

        result = invoke(cli_runner, runtime, ["list", URL, "--offset", "10", "--limit", "2"])

        assert result.exit_code == 0, result.output
        assert "total customers: 50 | offset: 10 | limit: 2" in result.output

    def test_range_summary_falls_back_to_request(self):
        query = build_query(offset="5", limit="20")
        page = Page(items=[], total=7)
        assert range_summary("users", page, query, 500) == "total users: 7 | offset: 5 | limit: 20"
        assert range_summary("users", page, build_query(), 500) == "total users: 7 | offset: 0 | limit: 500"

    def test_limit_help_makes_no_page_cap_claim(self, cli_runner, runtime):
        result = invoke(cli_runner, runtime, ["list", "--help"])
        assert result.exit_code == 0
        assert "500" not in result.output

    @patch("dcprov.api.requests.request")
    def test_csv_has_no_range_summary(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(list_payload(customers(0, 2), total=50))
        result = invoke(cli_runner, runtime, ["list", URL, "--csv"])
        assert result.exit_code == 0, result.output
        assert "total customers" not in result.output

    @patch("dcprov.api.requests.request")
    def test_empty_csv_has_header(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(list_payload([], total=0))
        result = invoke(cli_runner, runtime, ["list", URL, "--csv"])
        assert result.exit_code == 0
        assert result.stdout == (
            "companyName,customerContractType,userUsed,userMax,quotaUsed,quotaMax,id,createdAt\n"
        )

    @patch("dcprov.api.requests.request")
    def test_empty_pretty_message(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(list_payload([], total=0))
        result = invoke(cli_runner, runtime, ["list", URL])
        assert result.exit_code == 0
        assert "No results." in result.output

    @patch("dcprov.api.requests.request")
    def test_invalid_filter_aborts_before_network(self, mock_request, cli_runner, runtime, memory_store):
        result = invoke(cli_runner, runtime, ["list", URL, "-f", "companyName"])
        assert isinstance(result.exception, InvalidFilterSyntax)
        assert result.exit_code == 1
        mock_request.assert_not_called()
        assert memory_store.calls == []

    @patch("dcprov.api.requests.request")
    def test_invalid_limit(self, mock_request, cli_runner, runtime, stored):
        result = invoke(cli_runner, runtime, ["list", URL, "--limit", "0"])
        assert isinstance(result.exception, InvalidRange)
        mock_request.assert_not_called()

    @patch("dcprov.api.requests.request")
    def test_csv_keeps_partial_output_on_late_failure(self, mock_request, cli_runner, runtime, stored):
        mock_request.side_effect = [
            json_response(list_payload(customers(0, 2), total=5, offset=0)),
            json_response({"message": "Internal error"}, status_code=500),
        ]
        result = invoke(cli_runner, runtime, ["list", URL, "--all", "--csv"])

        assert isinstance(result.exception, PageFetchError)
        assert result.exit_code == 1
        rows = list(csv.reader(io.StringIO(result.stdout)))
        assert len(rows) == 3

    @patch("dcprov.api.requests.request")
    def test_pretty_suppresses_output_on_late_failure(self, mock_request, cli_runner, runtime, stored):
        mock_request.side_effect = [
            json_response(list_payload(customers(0, 2), total=5, offset=0)),
            json_response({"message": "Internal error"}, status_code=500),
        ]
        result = invoke(cli_runner, runtime, ["list", URL, "--all"])

        assert isinstance(result.exception, PageFetchError)
        assert "DRACOON 0" not in result.output

    @patch("dcprov.api.requests.request")
    def test_include_attributes(self, mock_request, cli_runner, runtime, stored):
        items = customers(0, 2)
        items[1]["customerAttributes"] = {"items": [{"key": "region", "value": "eu"}]}
        mock_request.return_value = json_response(list_payload(items, total=2))

        result = invoke(cli_runner, runtime, ["list", URL, "--include-attributes", "--csv"])

        assert result.exit_code == 0, result.output
        rows = list(csv.DictReader(io.StringIO(result.stdout)))
        assert rows[0]["attribute:region"] == ""
        assert rows[1]["attribute:region"] == "eu"
        assert mock_request.call_args[1]["params"]["include_attributes"] == "true"


class TestTokenResolution:
    @patch("dcprov.api.requests.request")
    def test_explicit_token_overrides_stored(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(list_payload([], total=0))

        result = invoke(cli_runner, runtime, ["--token", "explicit", "list", URL])

        assert result.exit_code == 0, result.output
        assert mock_request.call_args[1]["headers"]["X-Sds-Service-Token"] == "explicit"
        assert stored.calls == []

    @patch("dcprov.runtime.Prompt.ask", return_value="prompted-token")
    @patch("dcprov.api.requests.request")
    def test_prompt_and_store_on_first_use(self, mock_request, mock_ask, cli_runner, runtime, memory_store):
        mock_request.return_value = json_response(list_payload([], total=0))

        result = invoke(cli_runner, runtime, ["list", f"http://{URL}/"])

        assert result.exit_code == 0, result.output
        assert memory_store.entries == {DOMAIN: "prompted-token"}
        assert mock_request.call_args[1]["headers"]["X-Sds-Service-Token"] == "prompted-token"
        assert mock_ask.call_args[1]["password"] is True


class TestConfig:
    def test_set_get_delete(self, cli_runner, runtime, memory_store):
        result = invoke(cli_runner, runtime, ["config", URL, "set", "token1"])
        assert result.exit_code == 0
        result = invoke(cli_runner, runtime, ["config", URL, "set", "token2"])
        assert memory_store.entries == {DOMAIN: "token2"}

        result = invoke(cli_runner, runtime, ["config", URL, "get"])
        assert "token2" in result.output

        result = invoke(cli_runner, runtime, ["config", URL, "delete"])
        assert result.exit_code == 0
        assert memory_store.entries == {}

    def test_delete_absent(self, cli_runner, runtime):
        result = invoke(cli_runner, runtime, ["config", URL, "delete"])
        assert result.exit_code == 0

    def test_get_absent(self, cli_runner, runtime):
        result = invoke(cli_runner, runtime, ["config", URL, "get"])
        assert isinstance(result.exception, CredentialNotFound)


class TestCustomerCommands:
    @patch("dcprov.api.requests.request")
    def test_get_csv(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(customers(7, 1)[0])
        result = invoke(cli_runner, runtime, ["get", URL, "7", "--csv"])
        assert result.exit_code == 0, result.output
        rows = list(csv.DictReader(io.StringIO(result.stdout)))
        assert rows == [
            {
                "id": "7",
                "companyName": "DRACOON 7",
                "customerContractType": "pay",
                "quotaMax": "1024",
                "quotaUsed": "0",
                "userMax": "10",
                "userUsed": "1",
                "createdAt": "2024-01-01T00:00:00Z",
                "isLocked": "false",
            }
        ]

    @patch("dcprov.api.requests.request")
    def test_update_quota(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response({"id": 7, "companyName": "ACME", "quotaMax": 2048})
        result = invoke(cli_runner, runtime, ["update", URL, "7", "quota-max", "2048"])

        assert result.exit_code == 0, result.output
        args, kwargs = mock_request.call_args
        assert args == ("PUT", f"{DOMAIN}/api/v4/provisioning/customers/7")
        assert kwargs["json"] == {"quotaMax": 2048}
        assert "Updated customer with id 7" in result.output

    @patch("dcprov.api.requests.request")
    def test_update_company_name(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response({"id": 7, "companyName": "New"})
        result = invoke(cli_runner, runtime, ["update", URL, "7", "company-name", "New"])
        assert result.exit_code == 0, result.output
        assert mock_request.call_args[1]["json"] == {"companyName": "New"}

    @patch("dcprov.api.requests.request")
    def test_delete(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(None, status_code=204)
        result = invoke(cli_runner, runtime, ["delete", URL, "7"])
        assert result.exit_code == 0, result.output
        assert mock_request.call_args[0][0] == "DELETE"
        assert "Deleted customer with id 7" in result.output

    @patch("dcprov.api.requests.request")
    def test_create_from_file(self, mock_request, cli_runner, runtime, stored, tmp_path):
        customer_file = tmp_path / "customer.json"
        customer_file.write_text(
            json.dumps(
                {
                    "customerContractType": "pay",
                    "quotaMax": 1024,
                    "userMax": 10,
                    "companyName": "ACME",
                    "firstAdminUser": {"firstName": "Jo", "lastName": "Doe", "email": "jo@acme.test"},
                }
            )
        )
        mock_request.return_value = json_response({"id": 99, "companyName": "ACME"}, status_code=201)

        result = invoke(cli_runner, runtime, ["create", URL, "from-file", str(customer_file)])

        assert result.exit_code == 0, result.output
        assert mock_request.call_args[1]["json"]["firstAdminUser"]["firstName"] == "Jo"
        assert "Customer created" in result.output

    @patch("dcprov.api.requests.request")
    def test_create_from_invalid_file(self, mock_request, cli_runner, runtime, stored, tmp_path):
        customer_file = tmp_path / "customer.json"
        customer_file.write_text(json.dumps({"companyName": "ACME"}))

        result = invoke(cli_runner, runtime, ["create", URL, "from-file", str(customer_file)])

        assert isinstance(result.exception, DcProvUsageError)
        mock_request.assert_not_called()


class TestPromptNewCustomer:
    @patch("dcprov.commands.customer.Confirm.ask", return_value=False)
    @patch("dcprov.commands.customer.IntPrompt.ask", side_effect=[0, 1024, 10])
    @patch("dcprov.commands.customer.Prompt.ask", side_effect=["Jo", "Doe", "jo@acme.test", "ACME"])
    def test_builds_request(self, mock_prompt, mock_int, mock_confirm):
        customer = prompt_new_customer(Console(file=io.StringIO()))
        payload = customer.to_payload()

        assert payload["customerContractType"] == "pay"
        assert payload["quotaMax"] == 1024
        assert payload["userMax"] == 10
        assert payload["companyName"] == "ACME"
        assert payload["firstAdminUser"]["userName"] == "jo@acme.test"
        assert payload["firstAdminUser"]["authData"] == {"method": "basic", "mustChangePassword": True}
        assert payload["firstAdminUser"]["notifyUser"] is True


class TestUsersAndAttributes:
    @patch("dcprov.api.requests.request")
    def test_get_users(self, mock_request, cli_runner, runtime, stored):
        users = [{"id": 1, "firstName": "Jo", "lastName": "Doe", "userName": "jo", "isLocked": False}]
        mock_request.return_value = json_response(list_payload(users, total=1))

        result = invoke(cli_runner, runtime, ["get-users", URL, "7", "--csv"])

        assert result.exit_code == 0, result.output
        assert result.stdout == "id,firstName,lastName,userName,isLocked\n1,Jo,Doe,jo,false\n"
        assert mock_request.call_args[0][1] == f"{DOMAIN}/api/v4/provisioning/customers/7/users"

    @patch("dcprov.api.requests.request")
    def test_get_attributes_empty_csv(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response(list_payload([], total=0))
        result = invoke(cli_runner, runtime, ["get-attributes", URL, "7", "--csv"])
        assert result.exit_code == 0
        assert result.stdout == "key,value\n"

    @patch("dcprov.api.requests.request")
    def test_set_attributes(self, mock_request, cli_runner, runtime, stored):
        mock_request.return_value = json_response({"id": 7})
        result = invoke(cli_runner, runtime, ["set-attributes", URL, "7", "-a", "region=eu", "-a", "tier=gold"])

        assert result.exit_code == 0, result.output
        assert mock_request.call_args[1]["json"] == {
            "items": [{"key": "region", "value": "eu"}, {"key": "tier", "value": "gold"}]
        }

    @patch("dcprov.api.requests.request")
    def test_set_attributes_invalid_pair(self, mock_request, cli_runner, runtime, stored):
        result = invoke(cli_runner, runtime, ["set-attributes", URL, "7", "-a", "region"])
        assert isinstance(result.exception, DcProvUsageError)
        mock_request.assert_not_called()


class TestMain:
    @patch("dcprov.runtime.get_secret_store", return_value=MemorySecretStore())
    def test_error_exits_non_zero(self, mock_get_store, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["dcprov", "list", URL, "-f", "bad"])
        assert excinfo.value.code == 1
        assert "Invalid filter 'bad'" in capsys.readouterr().err

    def test_version(self, capsys):
        main(["dcprov", "version"])
        assert "dcprov version" in capsys.readouterr().out
