"""
Micro-benchmark for the catalog reconciliation.

Tests:
1. jaro_winkler() on typical supply names
2. analyze() end-to-end on a synthetic old/new catalog pair
3. Effect of the exact-name index (copies of new names in the old catalog)

Usage:
    python scripts/benchmark_matcher.py
"""

import time

import numpy as np

from insumo_matcher.matcher import analyze
from insumo_matcher.models import CatalogItem
from insumo_matcher.similarity import jaro_winkler

SUPPLIES = ['Aguja Hipodérmica', 'Jeringa', 'Catéter Venoso', 'Sonda Foley', 'Cánula Nasal', 'Equipo de Venoclisis']
SIZES = ['18G', '20G', '22G', '3ml', '5ml', '10ml', '14Fr', '16Fr']
BRANDS = ['', ' BD', ' Braun', ' Terumo', ' Covidien']


def generate_synthetic_catalog(n_rows: int, prefix: str, seed: int = 0):
    """Generate a synthetic catalog of supply names."""
    rng = np.random.default_rng(seed)
    items = []
    for i in range(n_rows):
        supply = rng.choice(SUPPLIES)
        size = rng.choice(SIZES)
        brand = rng.choice(BRANDS)
        items.append(CatalogItem(id=f"{prefix}-{i:05d}", name=f"{supply} {size}{brand}"))
    return items


def add_typos(items, rate: float = 0.3, seed: int = 1):
    """Drop accents / swap letters in a share of names, like a legacy catalog."""
    rng = np.random.default_rng(seed)
    noisy = []
    for item in items:
        name = item.name
        if rng.random() < rate:
            name = name.replace('é', 'e').replace('á', 'a')
        if rng.random() < rate and len(name) > 4:
            pos = int(rng.integers(1, len(name) - 2))
            name = name[:pos] + name[pos + 1] + name[pos] + name[pos + 2:]
        noisy.append(CatalogItem(id=item.id.replace('new', 'old'), name=name))
    return noisy


def benchmark_function(func, *args, **kwargs):
    """Benchmark a function and return (result, elapsed_ms)."""
    start = time.perf_counter()
    result = func(*args, **kwargs)
    end = time.perf_counter()
    return result, (end - start) * 1000


def benchmark_jaro_winkler(n_iterations: int = 10000):
    pairs = [
        ("Aguja Hipodermica 20G", "Aguja Hipodérmica 20G"),
        ("Jeringa 10ml", "Jeringa 5ml"),
        ("Sonda Foley 14Fr", "Cánula Nasal"),
        ("Equipo de Venoclisis Braun", "Equipo de venoclisis BD"),
    ]

    print("\n" + "="*70)
    print("BENCHMARK: jaro_winkler() - Hot Path")
    print("="*70)

    for s1, s2 in pairs:
        start = time.perf_counter()
        for _ in range(n_iterations):
            score = jaro_winkler(s1, s2)
        elapsed_ms = (time.perf_counter() - start) * 1000

        print(f"\n{s1!r} vs {s2!r} -> {score:.4f}")
        print(f"  Total: {elapsed_ms:.2f}ms ({n_iterations} calls)")
        print(f"  Per call: {elapsed_ms * 1000 / n_iterations:.2f}μs")


def benchmark_analyze(n_old: int, n_new: int):
    print("\n" + "="*70)
    print(f"BENCHMARK: analyze() - {n_old} old x {n_new} new")
    print("="*70)

    new_items = generate_synthetic_catalog(n_new, 'new')
    old_items = add_typos(new_items[:n_old])

    analysis, elapsed = benchmark_function(analyze, old_items, new_items)
    stats = analysis.statistics

    print(f"  Matching time: {elapsed:.2f}ms")
    print(f"  Per-item time: {elapsed / max(n_old, 1):.2f}ms")
    print(f"  Comparisons (upper bound): {n_old * n_new:,}")
    print(f"\nTiers: HIGH={stats.match_alto} MEDIUM={stats.match_medio} LOW={stats.match_bajo}")


def main():
    """Run all benchmarks."""
    print("="*70)
    print("CATALOG RECONCILIATION BENCHMARK")
    print("="*70)

    benchmark_jaro_winkler()
    benchmark_analyze(200, 1000)
    benchmark_analyze(1000, 2000)

    print("\n" + "="*70)
    print("BENCHMARK COMPLETE")
    print("="*70)


if __name__ == '__main__':
    main()
