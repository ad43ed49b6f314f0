"""Memory persistence and recall.

Layout:
    <project>/.memories/
    ├── 2026-02-04/
    │   ├── 153012_a1f3.md        # One memory per file, YAML frontmatter + markdown body
    │   └── 171545_09bc.md
    └── 2026-02-05/
        └── 090102_77de.md

    ~/.koi/registry.json          # Every project that has ever been remembered into

Date directories use the UTC date of the memory's timestamp. Filenames are
local wall-clock time plus a short random suffix.
"""
