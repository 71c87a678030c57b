"""Built-in examples offered in the sample picker."""

from __future__ import annotations

from dataclasses import dataclass

from .classifier import SourceHint


@dataclass(frozen=True)
class Sample:
    key: str
    label: str
    text: str
    hint: SourceHint


SAMPLES: dict[str, Sample] = {
    sample.key: sample
    for sample in (
        Sample(
            "flow",
            "Flowchart",
            """flowchart TD
  A([Start]) --> B{Valid input?}
  B -- Yes --> C[Render diagram]
  B -- No --> D[Show error]
  C --> E[Zoom & Pan enabled]
  D --> E
  E --> F([Done])""",
            SourceHint.DIAGRAM,
        ),
        Sample(
            "sequence",
            "Sequence",
            """sequenceDiagram
  participant U as User
  participant V as Viewer
  participant M as Mermaid
  U->>V: Paste definition
  V->>M: compile(definition)
  M-->>V: Returns SVG
  V-->>U: Pan & zoom hooks applied
  U->>U: Iterate quickly""",
            SourceHint.DIAGRAM,
        ),
        Sample(
            "gantt",
            "Gantt",
            """gantt
  dateFormat  YYYY-MM-DD
  title Local build example
  section Build
  Setup :done, 2023-01-02, 2d
  Coding :active, 2023-01-04, 4d
  Tests  : 2023-01-08, 3d
  Deploy : 2023-01-12, 1d""",
            SourceHint.DIAGRAM,
        ),
        Sample(
            "notes",
            "Markdown notes",
            """# Release notes

The build pipeline has **two** stages:

1. Compile the sources
2. Publish the artifacts

```mermaid
flowchart LR
  Compile --> Publish
```

> Diagrams render independently,
> so one broken block never hides the rest.""",
            SourceHint.MARKUP,
        ),
    )
}

DEFAULT_SAMPLE = "flow"
