"""Scriptable stand-in for an agent CLI.

The instruction is a ``;``-separated list of actions run in the current
directory, e.g. ``append:a.txt: world;print:done;exit:0``.
"""

import json
import os
import sys
import time


def main(instruction: str) -> int:
    code = 0
    for action in filter(None, instruction.split(";")):
        verb, _, rest = action.partition(":")
        if verb == "append":
            path, _, text = rest.partition(":")
            with open(path, "a", encoding="utf-8", newline="") as f:
                f.write(text)
            print(f"appended {path}", flush=True)
        elif verb == "create":
            path, _, text = rest.partition(":")
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        elif verb == "delete":
            os.remove(rest)
        elif verb == "print":
            print(rest, flush=True)
        elif verb == "blank":
            print("", flush=True)
        elif verb == "partial":
            sys.stdout.write(rest)
            sys.stdout.flush()
        elif verb == "stderr":
            print(rest, file=sys.stderr, flush=True)
        elif verb == "json":
            print("```json\n" + json.dumps({"answer": rest}) + "\n```", flush=True)
        elif verb == "env":
            print(os.environ.get(rest, ""), flush=True)
        elif verb == "sleep":
            time.sleep(float(rest))
        elif verb == "exit":
            code = int(rest)
    return code


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else ""))
