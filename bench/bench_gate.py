import argparse
import statistics
import time

from pathgate import Gate, PathRuleSet, StaticRightsOracle


def gen_rules(n: int) -> PathRuleSet:
    third = max(1, n // 3)
    return PathRuleSet(
        [f"/admin{i}" for i in range(third)],
        [f"/user{i}" for i in range(third)],
        [f"/public{i}" for i in range(n - 2 * third)],
    )


def run(size: int, iters: int):
    gate = Gate(StaticRightsOracle(admin=True, user=True), gen_rules(size))
    # worst case: the path only matches the last public prefix
    path = f"/public{size - 2 * max(1, size // 3) - 1}/page"
    lat = []
    for _ in range(iters):
        t0 = time.perf_counter()
        d = gate.decide(path, None)
        lat.append((time.perf_counter() - t0) * 1000.0)
    return {
        "p50": statistics.median(lat),
        "avg": sum(lat) / len(lat),
        "p90": percentile(lat, 90),
        "allowed": d.allowed,
    }


def percentile(arr, p):
    arr2 = sorted(arr)
    k = int(round((p / 100.0) * (len(arr2) - 1)))
    return arr2[k]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--sizes", type=int, nargs="+", default=[10, 50, 100, 500, 1000])
    ap.add_argument("--iters", type=int, default=200)
    args = ap.parse_args()
    print("size,avg_ms,p50_ms,p90_ms,allowed")
    for s in args.sizes:
        r = run(s, args.iters)
        print(f"{s},{r['avg']:.3f},{r['p50']:.3f},{r['p90']:.3f},{r['allowed']}")


if __name__ == "__main__":
    main()
