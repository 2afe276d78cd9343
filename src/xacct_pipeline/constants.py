"""Stable constants shared across the policy, topology, and graph planes."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
GRAPH_SCHEMA_VERSION: Final[int] = 1

# Pseudo parameters resolved by the provisioning backend when an identifier is unknown.
PSEUDO_ACCOUNT_ID: Final[str] = "${AWS::AccountId}"
PSEUDO_REGION: Final[str] = "${AWS::Region}"

POLICY_VERSION: Final[str] = "2012-10-17"

# Service principals for pipeline identities.
CODEPIPELINE_SERVICE: Final[str] = "codepipeline.amazonaws.com"
CODEBUILD_SERVICE: Final[str] = "codebuild.amazonaws.com"

# Naming defaults.
DEFAULT_REPOSITORY_NAME: Final[str] = "pipeline-test"
DEFAULT_SOURCE_BRANCH: Final[str] = "main"
DEFAULT_CONSUMER_BRANCH: Final[str] = "stg"
DEFAULT_ACCESS_ROLE_NAME: Final[str] = "codecommit-accessrole"
DEFAULT_SOURCE_PIPELINE_NAME: Final[str] = "SourcePipeline"
DEFAULT_SOURCE_PIPELINE_ROLE_NAME: Final[str] = "source-pipeline-role"
DEFAULT_DEPLOY_ROLE_NAME: Final[str] = "deploy-role"
DEFAULT_DEPLOY_PROJECT_NAME: Final[str] = "backend-build-project"
DEFAULT_CONSUMER_PIPELINE_NAME: Final[str] = "FrontCodePipeline"
DEFAULT_CONSUMER_PIPELINE_ROLE_NAME: Final[str] = "codepipeline-role"
DEFAULT_CONSUMER_BUILD_ROLE_NAME: Final[str] = "codebuild-role"
DEFAULT_CONSUMER_PROJECT_NAME: Final[str] = "frontend-build-project"
DEFAULT_ARTIFACT_BUCKET_NAME: Final[str] = "codecommit-artifact-kokorozashi"
DEFAULT_BUILD_IMAGE: Final[str] = "aws/codebuild/amazonlinux2-x86_64-standard:3.0"
DEFAULT_BUILDSPEC: Final[str] = "./buildspec.yml"

# Pipeline artifact names.
SOURCE_ARTIFACT: Final[str] = "SourceArtifact"
BUILD_ARTIFACT: Final[str] = "BuildArtifact"

# Action sets.
KEY_ADMIN_ACTIONS: Final[tuple[str, ...]] = ("kms:*",)
KEY_USAGE_ACTIONS: Final[tuple[str, ...]] = (
    "kms:Encrypt",
    "kms:Decrypt",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
    "kms:DescribeKey",
)
KEY_GRANT_ACTIONS: Final[tuple[str, ...]] = (
    "kms:CreateGrant",
    "kms:ListGrants",
    "kms:RevokeGrant",
)
REPOSITORY_READ_ACTIONS: Final[tuple[str, ...]] = (
    "codecommit:GetBranch",
    "codecommit:GetCommit",
    "codecommit:UploadArchive",
    "codecommit:GetUploadArchiveStatus",
    "codecommit:CancelUploadArchive",
    "codecommit:GetRepository",
)
STORE_OBJECT_WRITE_ACTIONS: Final[tuple[str, ...]] = ("s3:PutObject", "s3:PutObjectAcl")
STORE_OBJECT_READ_WRITE_ACTIONS: Final[tuple[str, ...]] = (
    "s3:GetObject",
    "s3:GetObjectVersion",
    "s3:PutObject",
    "s3:PutObjectAcl",
)
STORE_LIST_ACTIONS: Final[tuple[str, ...]] = ("s3:ListBucket",)
PIPELINE_STORE_ACTIONS: Final[tuple[str, ...]] = (
    "s3:PutObject",
    "s3:GetObject",
    "s3:GetObjectVersion",
)
PIPELINE_BUCKET_ACTIONS: Final[tuple[str, ...]] = ("s3:GetBucketVersioning",)
BUILD_TRIGGER_ACTIONS: Final[tuple[str, ...]] = ("codebuild:BatchGetBuilds", "codebuild:StartBuild")
BUILD_LOG_ACTIONS: Final[tuple[str, ...]] = (
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
)
BUILD_OBJECT_ACTIONS: Final[tuple[str, ...]] = (
    "s3:GetObject",
    "s3:GetObjectVersion",
    "s3:PutObject",
)
ASSUME_ROLE_ACTIONS: Final[tuple[str, ...]] = ("sts:AssumeRole",)

# Upper bound for any identity that runs a build-kind action.
BUILD_ACTION_ALLOWLIST: Final[frozenset[str]] = frozenset(
    (*BUILD_LOG_ACTIONS, *BUILD_OBJECT_ACTIONS, *KEY_USAGE_ACTIONS)
)

# Storage encryption header value for the managed key algorithm.
MANAGED_KEY_ALGORITHM: Final[str] = "aws:kms"
