"""
Build description tests.
"""
from pathlib import Path

import pytest

from feedbot_infra.containers import (
    CopyInstruction,
    ImageTarget,
    available_containers,
    contract_problems,
    get_container,
    parse_stages,
)

ROOT = Path(__file__).resolve().parents[1]

BUILDER = "FROM rust:1.73 AS builder\nRUN cargo build --release\n"
PRIMARY = (
    "FROM provided:al2023 AS bsky-feed-bot-lambda\n"
    "COPY --from=builder \\\n"
    "    /usr/src/bot/target/release/bsky-feed-bot \\\n"
    "    ${LAMBDA_RUNTIME_DIR}/bootstrap\n"
)
TEST = (
    "FROM provided:al2023 AS test\n"
    "COPY --from=builder /usr/src/bot/target/release/test ${LAMBDA_RUNTIME_DIR}/bootstrap\n"
)


def _problems(tmp_path, text):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_text(text)
    return contract_problems(dockerfile, available_containers())


def test_repository_dockerfile_satisfies_contract():
    dockerfile = ROOT / "Dockerfile"
    assert dockerfile.exists()
    assert contract_problems(dockerfile, available_containers()) == []


def test_parse_stages_handles_flags_case_and_continuations():
    text = "\n".join(
        [
            "# syntax=docker/dockerfile:1",
            "FROM --platform=linux/amd64 rust:1.73 as builder",
            "RUN cargo build --release",
            "from public.ecr.aws/lambda/provided:al2023 \\",
            "    AS bsky-feed-bot-lambda",
            "copy --from=builder --chmod=755 /src/target/release/bsky-feed-bot /var/runtime/bootstrap",
            "FROM scratch",
        ]
    )
    stages = parse_stages(text)
    assert [(stage.index, stage.base, stage.name) for stage in stages] == [
        (0, "rust:1.73", "builder"),
        (1, "public.ecr.aws/lambda/provided:al2023", "bsky-feed-bot-lambda"),
        (2, "scratch", None),
    ]
    assert stages[1].copies == (
        CopyInstruction(
            sources=("/src/target/release/bsky-feed-bot",),
            destination="/var/runtime/bootstrap",
            from_stage="builder",
        ),
    )
    assert stages[1].bootstrap_copy() is stages[1].copies[0]
    assert stages[2].bootstrap_copy() is None


def test_valid_build_description(tmp_path):
    assert _problems(tmp_path, BUILDER + PRIMARY + TEST) == []


def test_missing_target_stage(tmp_path):
    assert _problems(tmp_path, BUILDER + PRIMARY) == ["does not declare build stage 'test'"]


def test_wrong_binary_is_reported(tmp_path):
    swapped = TEST.replace("release/test", "release/bsky-feed-bot")
    assert _problems(tmp_path, BUILDER + PRIMARY + swapped) == [
        "stage 'test' packages 'bsky-feed-bot' as bootstrap, expected 'test'"
    ]


def test_missing_bootstrap_copy(tmp_path):
    no_copy = "FROM provided:al2023 AS test\nCMD [ \"lambda-handler\" ]\n"
    assert _problems(tmp_path, BUILDER + PRIMARY + no_copy) == [
        "stage 'test' does not copy a binary to bootstrap"
    ]


def test_copy_from_unknown_stage(tmp_path):
    elsewhere = TEST.replace("--from=builder", "--from=compiler")
    assert _problems(tmp_path, BUILDER + PRIMARY + elsewhere) == [
        "stage 'test' copies bootstrap from unknown build stage 'compiler'"
    ]


def test_copy_from_stage_index(tmp_path):
    by_index = TEST.replace("--from=builder", "--from=0")
    assert _problems(tmp_path, BUILDER + PRIMARY + by_index) == []


def test_mismatched_base_images(tmp_path):
    other_base = TEST.replace("provided:al2023", "provided:al2")
    assert _problems(tmp_path, BUILDER + PRIMARY + other_base) == [
        "target stages use different base images: bsky-feed-bot-lambda=provided:al2023, test=provided:al2"
    ]


def test_missing_dockerfile(tmp_path):
    with pytest.raises(FileNotFoundError):
        contract_problems(tmp_path / "Dockerfile", available_containers())


def test_container_registry_is_closed():
    assert [spec.target for spec in available_containers()] == [ImageTarget.PRIMARY, ImageTarget.TEST]
    assert get_container("primary").repository == "bsky-feed-bot-lambda"
    assert get_container(ImageTarget.TEST).stage == "test"
    with pytest.raises(ValueError, match="Expected one of: primary, test"):
        get_container("staging")


def test_release_refs_put_latest_first():
    spec = get_container("primary")
    assert spec.release_refs("reg.example", "a1b2c3d") == (
        "reg.example/bsky-feed-bot-lambda:latest",
        "reg.example/bsky-feed-bot-lambda:a1b2c3d",
    )
