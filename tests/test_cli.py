import io
import json
import unittest

from b2_usage.cli import USAGE, AuditOptions, build_api, main, parse_args
from b2_usage.models import BucketRef, ListingEntry, ListingPage, PageCursor, Session
from b2_usage.services import B2ApiError, B2NativeApi, S3CompatibleApi
from b2_usage.settings import AuditSettings, ConfigurationError

SETTINGS = AuditSettings(account_id="acct", application_key="secret", s3_endpoint_url="https://s3.example.com")


class FakeApi:
    def __init__(self, pages=None, list_error=None):
        self.pages = list(pages or [])
        self.list_error = list_error
        self.list_files_calls = []

    def authorize(self, account_id, application_key):
        return Session(authorization_token="token", api_url="https://api.example.com", account_id=account_id)

    def list_buckets(self, session):
        return [BucketRef("photos", "id-1")]

    def list_files(self, session, bucket_id, **kwargs):
        self.list_files_calls.append(kwargs)
        if self.list_error:
            raise self.list_error
        return self.pages.pop(0)


def sample_pages():
    return [
        ListingPage(
            number=1,
            entries=[ListingEntry("root.txt", 10), ListingEntry("docs/readme.md", 20)],
            cursor=PageCursor("docs/readme.md", "id-2"),
        ),
        ListingPage(number=2, entries=[ListingEntry("docs/img/logo.png", 30)]),
    ]


class ParseArgsTests(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(AuditOptions(bucket_name="photos"), parse_args(["photos"]))

    def test_prefix_and_flags_in_any_order(self):
        options = parse_args(["photos", "docs/", "--output=json", "--verbose", "--versions=false"])

        self.assertEqual("photos", options.bucket_name)
        self.assertEqual("docs/", options.prefix)
        self.assertEqual("json", options.output)
        self.assertTrue(options.verbose)
        self.assertFalse(options.include_versions)

    def test_flag_in_prefix_position_is_not_a_prefix(self):
        options = parse_args(["photos", "--output=csv"])

        self.assertEqual("", options.prefix)
        self.assertEqual("csv", options.output)

    def test_unknown_values_fall_back(self):
        options = parse_args(["photos", "--output=xml", "--backend=ftp", "--versions=maybe"])

        self.assertEqual("text", options.output)
        self.assertEqual("b2", options.backend)
        self.assertTrue(options.include_versions)

    def test_missing_bucket(self):
        self.assertIsNone(parse_args([]).bucket_name)
        self.assertIsNone(parse_args(["--verbose"]).bucket_name)

    def test_backend_env_file_and_debug(self):
        options = parse_args(["photos", "--backend=s3", "--env-file=/tmp/eu.env", "--debug"])

        self.assertEqual("s3", options.backend)
        self.assertEqual("/tmp/eu.env", options.env_file)
        self.assertTrue(options.debug)


class BuildApiTests(unittest.TestCase):
    def test_selects_backend(self):
        self.assertIsInstance(build_api("b2", SETTINGS), B2NativeApi)
        self.assertIsInstance(build_api("s3", SETTINGS), S3CompatibleApi)

    def test_s3_backend_requires_endpoint(self):
        with self.assertRaises(ConfigurationError):
            build_api("s3", AuditSettings(account_id="a", application_key="b"))


class MainTests(unittest.TestCase):
    def run_main(self, argv, api=None, settings_loader=None):
        stdout = io.StringIO()
        stderr = io.StringIO()
        ticks = iter([10.0, 12.5])
        self.api = api or FakeApi(sample_pages())
        code = main(
            argv,
            stdout=stdout,
            stderr=stderr,
            settings_loader=settings_loader or (lambda env_file=None: SETTINGS),
            api_factory=lambda backend, settings: self.api,
            clock=lambda: next(ticks),
        )
        return code, stdout.getvalue(), stderr.getvalue()

    def test_missing_bucket_prints_usage(self):
        code, out, _ = self.run_main([])

        self.assertEqual(1, code)
        self.assertEqual(USAGE + "\n", out)

    def test_unknown_bucket_exits_with_error(self):
        code, out, err = self.run_main(["missing"])

        self.assertEqual(1, code)
        self.assertEqual("", out)
        self.assertIn("Bucket not found.", err)

    def test_configuration_error_exits_with_error(self):
        def loader(env_file=None):
            raise ConfigurationError("B2_ACCOUNT_ID is not set")

        code, _, err = self.run_main(["photos"], settings_loader=loader)

        self.assertEqual(1, code)
        self.assertIn("B2_ACCOUNT_ID is not set", err)

    def test_json_report(self):
        code, out, _ = self.run_main(["photos", "--output=json"])

        self.assertEqual(0, code)
        payload = json.loads(out)
        self.assertEqual("photos", payload["bucket"])
        self.assertEqual(60, payload["total_size_bytes"])
        self.assertEqual(3, payload["total_files"])
        self.assertEqual(2.5, payload["elapsed_seconds"])
        self.assertEqual(
            [
                {"folder": "", "size_bytes": 10, "file_count": 1},
                {"folder": "docs/", "size_bytes": 20, "file_count": 1},
                {"folder": "docs/img/", "size_bytes": 30, "file_count": 1},
            ],
            payload["folders"],
        )

    def test_verbose_text_report_with_current_listing(self):
        code, out, _ = self.run_main(["photos", "docs/", "--verbose", "--versions=false"])

        self.assertEqual(0, code)
        lines = out.splitlines()
        self.assertEqual("  root.txt (10 bytes)", lines[0])
        self.assertIn("  docs/img/logo.png (30 bytes)", lines)
        self.assertIn("Total size:    60 B", lines)
        self.assertIn("Elapsed time:  2.5 seconds", lines)
        self.assertEqual(["docs/", "docs/"], [call["prefix"] for call in self.api.list_files_calls])
        self.assertEqual([False, False], [call["include_versions"] for call in self.api.list_files_calls])
        self.assertIsNone(self.api.list_files_calls[1]["cursor"].next_id)

    def test_csv_report(self):
        code, out, _ = self.run_main(["photos", "--output=csv"])

        self.assertEqual(0, code)
        self.assertEqual("folder,size_bytes,file_count\n,10,1\ndocs/,20,1\ndocs/img/,30,1\n", out)

    def test_remote_failures_propagate(self):
        error = B2ApiError("b2_list_file_versions", 401, "expired_auth_token", "expired")

        with self.assertRaises(B2ApiError):
            self.run_main(["photos"], api=FakeApi(list_error=error))


if __name__ == "__main__":
    unittest.main()
