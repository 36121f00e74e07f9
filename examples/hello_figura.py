import sys
import time
from pathlib import Path

import figura
from figura.core.examples import EXAMPLES


def main() -> None:
    if len(sys.argv) != 2:
        raise SystemExit("usage: python examples/hello_figura.py PIROUETTE.bvh")

    srv = figura.run(port=57793)
    motion = figura.load_bvh(Path(sys.argv[1]), name="pirouette").motion
    srv.session.load_motion("pirouette", motion)

    client = figura.FiguraClient(srv.url)
    for ex in EXAMPLES:
        clip = client.compile(ex.script)
        print(f"{ex.id:<22} revision {clip['revision']:>2}  duration {clip['duration']:.2f}s  tracks {len(clip['tracks'])}")

    print(f"serving {srv.url}")
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
