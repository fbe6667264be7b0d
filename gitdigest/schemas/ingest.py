from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from gitdigest.core.config import settings
from gitdigest.services.ingestion.models import IngestOptions
from gitdigest.services.ingestion.patterns import parse_patterns
from gitdigest.utils.sizes import log_slider_to_size

class IngestRepoRequest(BaseModel):
    repo_url: str = Field(..., min_length=1, description="Repository URL or owner/repo")
    max_file_size_kb: Optional[int] = Field(None, ge=1, description="Overrides slider_position")
    slider_position: Optional[int] = Field(None, ge=1, le=500)

    # the form's single pattern box
    pattern_type: Literal["exclude", "include"] = "exclude"
    pattern: str = ""

    include_patterns: List[str] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list)

    token: Optional[str] = None
    branch: Optional[str] = None
    respect_gitignore: bool = True

    def max_file_size_bytes(self) -> int:
        if self.max_file_size_kb is not None:
            return self.max_file_size_kb * 1024
        position = self.slider_position or settings.DEFAULT_SLIDER_POSITION
        return log_slider_to_size(position) * 1024

    def to_options(self) -> IngestOptions:
        include = list(self.include_patterns)
        exclude = list(self.exclude_patterns)
        if self.pattern_type == "include":
            include += parse_patterns(self.pattern)
        else:
            exclude += parse_patterns(self.pattern)

        return IngestOptions(
            max_file_size=self.max_file_size_bytes(),
            include_patterns=include,
            exclude_patterns=exclude,
            auth_token=self.token or None,
            branch=self.branch or None,
            respect_gitignore=self.respect_gitignore,
        )

class IngestRepoResponse(BaseModel):
    repo_url: str
    short_repo_url: str
    summary: str
    tree: str
    content: str
    token_count: Optional[str] = None
    branch: Optional[str] = None
