from __future__ import annotations

from typing import Iterable, List

from layered_review.models import ParsedDiff
from layered_review.parsing import DiffParser

SAMPLE_DIFF = """diff --git a/src/app.ts b/src/app.ts
index 83db48f..bf269f4 100644
--- a/src/app.ts
+++ b/src/app.ts
@@ -1,3 +1,4 @@
 import x from 'x';
-const a = 1;
+const a = 2;
+const b = 3;
 export default a;
\\ No newline at end of file
@@ -10 +11,2 @@ function foo() {
 ctx
+added
diff --git a/new.txt b/new.txt
new file mode 100644
index 0000000..ce01362
--- /dev/null
+++ b/new.txt
@@ -0,0 +1,2 @@
+hello
+world
diff --git a/gone.txt b/gone.txt
deleted file mode 100644
index 0f5a9e2..0000000
--- a/gone.txt
+++ /dev/null
@@ -1 +0,0 @@
-bye
diff --git a/old/name.py b/new/name.py
similarity index 90%
rename from old/name.py
rename to new/name.py
--- a/old/name.py
+++ b/new/name.py
@@ -3,2 +3,2 @@
-x = 1
+x = 2
 y = 3
"""


def make_diff(filename: str, added: Iterable[str], *, start: int = 1) -> str:
    """Build a one-hunk diff that only adds ``added`` to ``filename``."""
    lines: List[str] = list(added)
    header = [
        f"diff --git a/{filename} b/{filename}",
        f"--- a/{filename}",
        f"+++ b/{filename}",
        f"@@ -{start - 1},0 +{start},{len(lines)} @@",
    ]
    return "\n".join(header + [f"+{line}" for line in lines]) + "\n"


def parse(raw: str) -> ParsedDiff:
    return DiffParser().parse(raw)
