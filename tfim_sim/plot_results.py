# tfim_sim/plot_results.py
import csv, os
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from collections import defaultdict

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

def load_rows(path):
    """Read a results CSV, dropping rows that recorded an error."""
    rows = []
    with open(path, "r") as f:
        for row in csv.DictReader(f):
            if row.get("error"):
                continue
            for k, v in row.items():
                if k in ("L", "threads", "sparse"):
                    row[k] = int(v)
                elif k in ("h", "t", "energy", "gap", "magnetization", "magnetization_z",
                           "norm", "wall_ms"):
                    row[k] = float(v)
            rows.append(row)
    return rows

def by_size(rows, x, y):
    series = defaultdict(list)
    for r in rows:
        series[r["L"]].append((r[x], r[y]))
    return {L: sorted(p) for L, p in sorted(series.items())}

def plot_vs_field(rows, y, ylabel, out_dir):
    series = by_size(rows, "h", y)
    if not series: return None
    plt.figure()
    for L, p in series.items():
        xs, ys = zip(*p)
        plt.plot(xs, ys, marker="o", label=f"L={L}")
    plt.xlabel("Transverse field h")
    plt.ylabel(ylabel)
    plt.title(f"{ylabel} vs h")
    plt.grid(True)
    plt.legend()
    path = os.path.join(out_dir, f"{y}_vs_h.png")
    plt.savefig(path, dpi=200)
    plt.close()
    return path

def plot_vs_time(rows, out_dir):
    series = by_size(rows, "t", "magnetization")
    if not series: return None
    plt.figure()
    for L, p in series.items():
        xs, ys = zip(*p)
        plt.plot(xs, ys, marker="o", label=f"L={L}")
    plt.xlabel("Time t")
    plt.ylabel("Magnetization")
    plt.title("Magnetization vs t")
    plt.grid(True)
    plt.legend()
    path = os.path.join(out_dir, "magnetization_vs_t.png")
    plt.savefig(path, dpi=200)
    plt.close()
    return path

def plot_build_times(rows, tag, out_dir):
    if not rows: return None
    xs, ys = zip(*sorted((r["L"], r["wall_ms"]) for r in rows))
    plt.figure()
    plt.plot(xs, ys, marker="o")
    plt.xlabel("Sites (L)")
    plt.ylabel("Build time (ms, log scale)")
    plt.title(f"Hamiltonian assembly [{tag}]")
    plt.yscale("log")
    plt.grid(True, which="both", ls="--", lw=0.5)
    path = os.path.join(out_dir, f"build_vs_L_{tag}.png")
    plt.savefig(path, dpi=200)
    plt.close()
    return path

def plot_all(data_dir=DATA_DIR):
    """Plot every CSV found under data_dir next to it; returns the PNG paths."""
    written = []
    for root, _, files in os.walk(data_dir):
        for f in sorted(files):
            if not f.endswith(".csv"):
                continue
            path = os.path.join(root, f)
            tag = os.path.splitext(f)[0]
            rows = load_rows(path)
            print(f"Plotting from {os.path.relpath(path, data_dir)} ({len(rows)} rows)...")
            if tag == "ground":
                written.append(plot_vs_field(rows, "magnetization", "Magnetization", root))
                written.append(plot_vs_field(rows, "energy", "Ground-state energy", root))
            elif tag == "evolve":
                written.append(plot_vs_time(rows, root))
            elif tag == "build":
                written.append(plot_build_times(rows, os.path.basename(root), root))
    return [p for p in written if p]

def main():
    written = plot_all()
    if not written:
        print("No CSV files found under data/")
        return
    print(f"\nSaved {len(written)} plots under data/")

if __name__ == "__main__":
    main()
