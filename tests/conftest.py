from types import SimpleNamespace

import pytest
from git import Repo

from reviewbridge.comments.store import CommentStore
from reviewbridge.comments.sync import SyncCoordinator
from reviewbridge.diff.parser import parse_diff
from reviewbridge.services.review_service import ReviewService

# One hunk: a context line and an added line at new line 2
SCENARIO_A_DIFF = """diff --git a/a.ts b/a.ts
index 83db48f..bf269f4 100644
--- a/a.ts
+++ b/a.ts
@@ -1,3 +1,4 @@
 const a = 1
+const b = 2
"""

# Same file, now only a header and one line
SCENARIO_C_DIFF = """diff --git a/a.ts b/a.ts
index 83db48f..0c1e2d3 100644
--- a/a.ts
+++ b/a.ts
@@ -1 +1,2 @@
+const z = 0
"""

MULTI_FILE_DIFF = """diff --git a/src/app.py b/src/app.py
index 1111111..2222222 100644
--- a/src/app.py
+++ b/src/app.py
@@ -1,4 +1,5 @@
 import os
-import sys
+import json
+import logging
 
 def main():
@@ -10,3 +11,3 @@ def main():
     value = 1
-    return value
+    return value * 2
 
diff --git a/docs/old.md b/docs/old.md
deleted file mode 100644
index 3333333..0000000
--- a/docs/old.md
+++ /dev/null
@@ -1,2 +0,0 @@
-# Old
-gone
diff --git a/new.txt b/new.txt
new file mode 100644
index 0000000..4444444
--- /dev/null
+++ b/new.txt
@@ -0,0 +1 @@
+hello
\\ No newline at end of file
"""


class FakeRepository(SimpleNamespace):
    """Stands in for GitRepository when the diff text is supplied by the test."""


@pytest.fixture
def store():
    return CommentStore()


@pytest.fixture
def coordinator():
    return SyncCoordinator(queue_size=8)


@pytest.fixture
def service(store, coordinator):
    return ReviewService(store, coordinator)


@pytest.fixture
def scenario_a_snapshot():
    return parse_diff(SCENARIO_A_DIFF)


@pytest.fixture
def loaded_service(service, scenario_a_snapshot, monkeypatch):
    """A service with a fake repository whose next fetch returns ``service.next_snapshot``."""
    service.repository = FakeRepository(root_path="/tmp/fake-repo")
    service.snapshot = scenario_a_snapshot
    service.next_snapshot = scenario_a_snapshot

    async def fake_fetch(repository):
        return service.next_snapshot

    monkeypatch.setattr("reviewbridge.services.review_service.fetch_diff", fake_fetch)
    return service


@pytest.fixture
def git_repo(tmp_path):
    repo = Repo.init(tmp_path)
    with repo.config_writer() as config:
        config.set_value("user", "name", "Review Tester")
        config.set_value("user", "email", "tester@example.com")
        config.set_value("commit", "gpgsign", "false")
    (tmp_path / "a.txt").write_text("one\ntwo\nthree\n")
    (tmp_path / "b.txt").write_text("alpha\nbeta\n")
    repo.git.add("--", "a.txt", "b.txt")
    repo.git.commit("-m", "initial")
    return repo


# Removed and added rows interleaved: stable id order differs from real line order
INTERLEAVED_DIFF = """diff --git a/m.py b/m.py
index 3333333..4444444 100644
--- a/m.py
+++ b/m.py
@@ -10,3 +10 @@
-a = 1
-b = 2
+c = 3
-d = 4
"""
