# tfim_sim/cli.py
import argparse, csv, logging, os, socket, subprocess, sys, time
from datetime import datetime
from .hamiltonian import build_hamiltonian
from .sweep import Ramp, evolution_sweep, ground_state_sweep, parse_list

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

GROUND_HEADER = ["L","h","energy","gap","magnetization","magnetization_z","error",
                 "hostname","commit","timestamp"]
EVOLVE_HEADER = ["L","t","h","magnetization","magnetization_z","energy","norm","error",
                 "hostname","commit","timestamp"]
BUILD_HEADER = ["L","backend","threads","sparse","wall_ms","hostname","commit","timestamp"]

# ---------------------------------------------------------------------

def meta_row():
    commit = ""
    try:
        commit = subprocess.check_output(["git", "rev-parse", "--short", "HEAD"],
                                         stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        pass
    return {
        "hostname": socket.gethostname(),
        "commit": commit,
        "timestamp": datetime.now().isoformat(timespec="seconds"),
    }

def write_csv(path, header, rows):
    """Create/overwrite CSV with header and rows (metadata columns filled in)."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    meta = meta_row()
    with open(path, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=header, extrasaction="ignore")
        w.writeheader()
        for row in rows:
            w.writerow({**meta, **row})

def threads_for(backend):
    if backend != "numba":
        return 0
    from .build_numba import get_threads
    return get_threads()

def report_failures(rows):
    bad = [r for r in rows if r.get("error")]
    for r in bad:
        key = {k: r[k] for k in ("L", "h", "t") if k in r}
        print(f"  FAILED {key}: {r['error']}")
    return len(bad)

# ---------------------------------------------------------------------
# individual experiments

def run_ground(args, out_path):
    print(f"[run] Ground states → {out_path}")
    rows = ground_state_sweep(args.sizes, args.fields, backend=args.backend, sparse=args.sparse)
    for r in rows:
        if not r["error"]:
            print(f"  L={r['L']}  h={r['h']:g}  E0={r['energy']:.6f}  M={r['magnetization']:.4f}")
    write_csv(out_path, GROUND_HEADER, rows)
    n_bad = report_failures(rows)
    print("✓ done.\n")
    return n_bad

def run_evolve(args, out_path):
    print(f"[run] Time evolution L={args.L} h(t)={args.h0:g}{args.rate:+g}·t → {out_path}")
    rows = evolution_sweep(args.L, Ramp(args.h0, args.rate), args.times, initial=args.initial,
                           workers=args.workers, executor=args.executor,
                           backend=args.backend, sparse=args.sparse)
    for r in rows:
        r["L"] = args.L
        if not r["error"]:
            print(f"  t={r['t']:g}  h={r['h']:g}  M={r['magnetization']:.4f}  |psi|={r['norm']:.6f}")
    write_csv(out_path, EVOLVE_HEADER, rows)
    n_bad = report_failures(rows)
    print("✓ done.\n")
    return n_bad

def time_build(L, backend, sparse):
    t0 = time.perf_counter()
    build_hamiltonian(L, 1.0, backend=backend, sparse=sparse)
    return (time.perf_counter() - t0) * 1e3  # ms

def run_build(args, out_path):
    print(f"[run] Hamiltonian assembly → {out_path}")
    # one dummy build to JIT-compile
    time_build(min(args.sizes), args.backend, args.sparse)
    rows = []
    for L in args.sizes:
        wall = time_build(L, args.backend, args.sparse)
        rows.append({"L": L, "backend": args.backend, "threads": threads_for(args.backend),
                     "sparse": int(args.sparse), "wall_ms": f"{wall:.3f}"})
        print(f"  L={L}  wall={wall:.2f} ms")
    write_csv(out_path, BUILD_HEADER, rows)
    print("✓ done.\n")
    return 0

# ---------------------------------------------------------------------
def build_parser():
    p = argparse.ArgumentParser(prog="tfim-sim",
                                description="transverse-field Ising chain → data/*.csv")
    p.add_argument("--data-dir", type=str, default=DATA_DIR)
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    def common(sp):
        sp.add_argument("--backend", type=str, default="serial", choices=["serial","numba"])
        sp.add_argument("--sparse", action="store_true")

    p_ground = sub.add_parser("ground")
    p_ground.add_argument("--sizes", type=lambda s: parse_list(s, int), default=[2,4,6,8])
    p_ground.add_argument("--fields", type=parse_list, default=[0.0,0.25,0.5,0.75,1.0,1.25,1.5,2.0])
    common(p_ground)

    p_evolve = sub.add_parser("evolve")
    p_evolve.add_argument("--L", type=int, default=6)
    p_evolve.add_argument("--h0", type=float, default=1.0)
    p_evolve.add_argument("--rate", type=float, default=0.0)
    p_evolve.add_argument("--times", type=parse_list, default=[0.0,0.25,0.5,1.0,2.0,4.0])
    p_evolve.add_argument("--initial", type=str, default="up", choices=["up","neel","ground"])
    p_evolve.add_argument("--workers", type=int, default=None)
    p_evolve.add_argument("--executor", type=str, default="thread", choices=["thread","process"])
    common(p_evolve)

    p_build = sub.add_parser("build")
    p_build.add_argument("--sizes", type=lambda s: parse_list(s, int), default=[4,6,8,10])
    common(p_build)
    return p

def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    )

    if args.cmd == "ground":
        out_path = os.path.join(args.data_dir, "ground.csv")
        n_bad = run_ground(args, out_path)
    elif args.cmd == "evolve":
        out_path = os.path.join(args.data_dir, "evolve.csv")
        n_bad = run_evolve(args, out_path)
    elif args.cmd == "build":
        out_path = os.path.join(args.data_dir, args.backend, "build.csv")
        n_bad = run_build(args, out_path)
    return 1 if n_bad else 0

if __name__ == "__main__":
    sys.exit(main())
