import pytest

from stagepkg.errors import (
    DocumentGenerationError,
    ErrorCode,
    ExternalToolFailure,
    MissingRequiredConfiguration,
    PathResolutionError,
    ValidationError,
)
from stagepkg.naming import (
    debian_architecture,
    debian_version,
    fallback_identifier,
    resolve_identifier,
    rpm_architecture,
    sanitize_token,
    windows_version,
)


def test_sanitize_token_keeps_lowercase_alphanumerics() -> None:
    assert sanitize_token("My $Project") == "myproject"
    assert sanitize_token("Joe's Software") == "joessoftware"


def test_fallback_identifier_is_deterministic() -> None:
    assert fallback_identifier("Joe's Software", "My $Project") == "test.joessoftware.pkg.myproject"
    assert fallback_identifier("!!!", "???", kind="msi") == "test.unknown.msi.project"


def test_resolve_identifier_prefers_configured_value() -> None:
    assert (
        resolve_identifier("com.mycorp.myproject", maintainer="Joe", name="x")
        == "com.mycorp.myproject"
    )
    with pytest.raises(ValidationError):
        resolve_identifier("com..broken", maintainer="Joe", name="x")


@pytest.mark.parametrize(
    ("version", "expected"),
    [("1", "1.0.0"), ("23.4", "23.4.0"), ("23.4.2", "23.4.2"), ("23.4.2+git.12", "23.4.2")],
)
def test_windows_version_pads_numeric_fields(version: str, expected: str) -> None:
    assert windows_version(version) == expected


def test_windows_version_rejects_large_fields() -> None:
    with pytest.raises(ValidationError):
        windows_version("1.65536.0")


def test_distribution_specific_names() -> None:
    assert debian_version("1.0.0-rc.1") == "1.0.0~rc.1"
    assert debian_architecture("x86_64") == "amd64"
    assert debian_architecture("riscv64") == "riscv64"
    assert rpm_architecture("arm64") == "aarch64"


def test_error_codes_are_stable_and_machine_readable() -> None:
    errors = [
        ValidationError("bad input"),
        MissingRequiredConfiguration("s3_bucket", "'my_bucket'"),
        PathResolutionError("no dir"),
        ExternalToolFailure("pkgbuild", 1, "boom"),
        DocumentGenerationError("bad xml"),
    ]

    assert [error.code for error in errors] == [
        ErrorCode.VALIDATION.value,
        ErrorCode.MISSING_CONFIGURATION.value,
        ErrorCode.PATH_RESOLUTION.value,
        ErrorCode.EXTERNAL_TOOL.value,
        ErrorCode.DOCUMENT.value,
    ]


def test_to_dict_includes_hint_and_context() -> None:
    error = MissingRequiredConfiguration("s3_bucket", "'my_bucket'")

    payload = error.to_dict()

    assert payload["code"] == "E_MISSING_CONFIGURATION"
    assert payload["hint"] == "Set it explicitly, for example: s3_bucket = 'my_bucket'"
    assert payload["context"] == {"key": "s3_bucket"}
    assert str(payload["message"]).startswith("Missing required configuration value `s3_bucket`.")


def test_to_dict_exposes_typed_attributes() -> None:
    missing = MissingRequiredConfiguration("s3_bucket", "'my_bucket'").to_dict()
    failure = ExternalToolFailure("pkgbuild", 1, "boom", command="pkgbuild --root x").to_dict()

    assert missing["key"] == "s3_bucket"
    assert missing["example"] == "'my_bucket'"
    assert failure["program"] == "pkgbuild"
    assert failure["exit_code"] == 1
    assert "program" not in PathResolutionError("no dir").to_dict()


def test_summary_is_first_line_of_rendered_error() -> None:
    error = PathResolutionError("no dir", hint="create it", context={"path": "/opt/x", "key": ""})

    assert error.summary == "no dir"
    assert str(error) == "no dir\nHint: create it\n  path: /opt/x"


def test_external_tool_failure_keeps_output_tail() -> None:
    output = "x" * 5000 + "tail"

    error = ExternalToolFailure("rpmbuild", 2, output, command="rpmbuild -bb x.spec")

    assert error.output == output
    assert len(error.context["output"]) == 4000
    assert error.context["output"].endswith("tail")
    assert error.context["command"] == "rpmbuild -bb x.spec"
