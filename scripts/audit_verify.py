from __future__ import annotations

import argparse
import json
import os
from typing import List, Optional

from settler.core.audit import verify_file


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Settler audit trail verify")
    ap.add_argument("jsonl_path")
    args = ap.parse_args(argv)
    if not os.path.isfile(args.jsonl_path):
        print(json.dumps({"ok": False, "message": "missing", "path": args.jsonl_path}))
        return 2
    rep = verify_file(args.jsonl_path)
    print(json.dumps(rep.model_dump(), indent=2, sort_keys=True))
    return 0 if rep.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
