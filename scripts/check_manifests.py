"""Report inconsistencies between the review and public manifests."""

import json
import sys
from pathlib import Path
from typing import List


def load_manifest(path: Path) -> dict:
    if not path.exists():
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise SystemExit(f"Invalid manifest: {path} must contain an object.")
    return data


def check_document(label: str, manifest: dict) -> List[str]:
    problems: List[str] = []
    for name, entry in sorted(manifest.items()):
        versions = entry.get("versions") if isinstance(entry, dict) else None
        if not versions:
            problems.append(f"{label}: {name} has no versions")
            continue
        ids = [version.get("id") for version in versions]
        duplicates = sorted({vid for vid in ids if ids.count(vid) > 1})
        for vid in duplicates:
            problems.append(f"{label}: {name} lists version {vid} more than once")
        if label == "public":
            for version in versions:
                if "revision" in version:
                    problems.append(f"public: {name} {version.get('id')} still carries a revision")
    return problems


def main() -> None:
    repo_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("repo")
    review = load_manifest(repo_dir / "manifest-review.json")
    public = load_manifest(repo_dir / "manifest-public.json")

    problems = check_document("review", review) + check_document("public", public)
    for name, entry in sorted(review.items()):
        published = {v.get("id") for v in (public.get(name) or {}).get("versions", [])}
        for version in entry.get("versions") or []:
            if version.get("id") in published:
                problems.append(f"{name} {version.get('id')} is both under review and public")

    for problem in problems:
        print(problem)
    if problems:
        raise SystemExit(1)
    print("Manifests are consistent.")


if __name__ == "__main__":
    main()
