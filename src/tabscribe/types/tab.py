from pydantic import BaseModel, ConfigDict, Field, field_validator

HTTP_SCHEMES = ("http://", "https://")


class TabRef(BaseModel):
    """Address of one browser tab.

    Chrome and Arc hand out stable ids. Safari only exposes the tab's index
    inside its window, which shifts as soon as a tab before it is closed or
    moved, so a Safari ref is only good for the operation that produced it.
    """

    model_config = ConfigDict(frozen=True)

    window_id: str
    tab_id: str


class Tab(TabRef):
    title: str = Field(default="")
    url: str

    @field_validator("url")
    @classmethod
    def _require_http(cls, value: str) -> str:
        if not value.startswith(HTTP_SCHEMES):
            raise ValueError(f"not an http(s) url: {value}")
        return value

    @property
    def ref(self) -> TabRef:
        return TabRef(window_id=self.window_id, tab_id=self.tab_id)


class TabContent(BaseModel):
    """Page as read from the browser; ``content`` is the raw document HTML."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    content: str


class ExtractedContent(TabContent):
    """Page after extraction; ``content`` is markdown."""
