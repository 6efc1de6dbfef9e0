#!/usr/bin/env python3
"""Pydantic models for the subset of GitHub REST payloads the sources consume."""

from typing import List, Optional

from pydantic import BaseModel, Field


class GitHubRelease(BaseModel):
	"""Release payload from ``/repos/{owner}/{repo}/releases``."""
	id: Optional[int] = Field(None, description="Release id")
	tag_name: str = Field(..., description="Git tag the release points at")
	name: Optional[str] = Field(None, description="Release title")
	body: Optional[str] = Field(None, description="Release notes markdown")
	published_at: Optional[str] = Field(None, description="ISO timestamp; null for drafts")
	html_url: Optional[str] = Field(None, description="Release page URL")
	draft: bool = Field(False, description="Draft flag")
	prerelease: bool = Field(False, description="Pre-release flag")

	model_config = {"extra": "ignore"}


class GitHubCommitDetail(BaseModel):
	message: str = Field("", description="Full commit message")

	model_config = {"extra": "ignore"}


class GitHubCommit(BaseModel):
	"""Commit entry of a comparison payload."""
	sha: str = Field(..., description="Commit SHA")
	commit: GitHubCommitDetail = Field(default_factory=GitHubCommitDetail)
	html_url: Optional[str] = Field(None, description="Commit page URL")

	model_config = {"extra": "ignore"}

	@property
	def subject(self) -> str:
		return self.commit.message.split("\n")[0]


class GitHubTag(BaseModel):
	name: str = Field(..., description="Tag name")

	model_config = {"extra": "ignore"}


class GitHubComparison(BaseModel):
	"""Payload from ``/repos/{owner}/{repo}/compare/{base}...{head}``."""
	html_url: Optional[str] = Field(None, description="Compare page URL")
	status: Optional[str] = Field(None, description="ahead/behind/diverged/identical")
	total_commits: int = Field(0, description="Number of commits in range")
	commits: List[GitHubCommit] = Field(default_factory=list)

	model_config = {"extra": "ignore"}


class ChangelogFile(BaseModel):
	"""A changelog located in the repository."""
	path: str
	content: str
