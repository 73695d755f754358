import matplotlib.pyplot as plt

PARADIGM_MARKERS = {'Threads': 'o', 'Processes': 's'}


def plot_benchmark(results, workers, filename, t_seq=None):
    """
    Draws execution time, speedup and parallel efficiency against the worker
    count for every paradigm in ``results`` and saves the figure.

    ``results`` maps paradigm -> workers -> {'time', 'speedup', 'efficiency'}.
    """
    fig, axes = plt.subplots(1, 3, figsize=(18, 5.5))
    fig.suptitle('Parallel Filter Engine: Threads vs Processes', fontsize=14, fontweight='bold')

    # ============================================================
    # 1. EXECUTION TIME
    # ============================================================
    ax = axes[0]
    for paradigm, data in results.items():
        ax.plot(workers, [data[w]['time'] for w in workers],
                marker=PARADIGM_MARKERS.get(paradigm, '^'), label=paradigm, linewidth=2)
    if t_seq is not None:
        ax.axhline(y=t_seq, color='red', linestyle=':', linewidth=2, label='Sequential Baseline', alpha=0.7)
    ax.set_xlabel('Number of Workers')
    ax.set_ylabel('Execution Time (seconds)')
    ax.set_title('Execution Time vs Number of Workers')

    # ============================================================
    # 2. SPEEDUP
    # ============================================================
    ax = axes[1]
    for paradigm, data in results.items():
        ax.plot(workers, [data[w]['speedup'] for w in workers],
                marker=PARADIGM_MARKERS.get(paradigm, '^'), label=paradigm, linewidth=2)
    ax.plot(workers, workers, linestyle='--', marker='x', color='gray', label='Ideal Linear Speedup')
    ax.set_xlabel('Number of Workers')
    ax.set_ylabel('Speedup')
    ax.set_title('Speedup vs Number of Workers')

    # ============================================================
    # 3. PARALLEL EFFICIENCY
    # ============================================================
    ax = axes[2]
    for paradigm, data in results.items():
        ax.plot(workers, [data[w]['efficiency'] for w in workers],
                marker=PARADIGM_MARKERS.get(paradigm, '^'), label=paradigm, linewidth=2)
    ax.axhline(y=1.0, color='green', linestyle='--', linewidth=1.5, label='Perfect (100%)', alpha=0.6)
    ax.set_xlabel('Number of Workers')
    ax.set_ylabel('Parallel Efficiency')
    ax.set_title('Parallel Efficiency vs Number of Workers')
    ax.set_ylim(0, 1.2)

    for ax in axes:
        ax.set_xticks(workers)
        ax.grid(True, alpha=0.3, linestyle=':')
        ax.legend(loc='best', fontsize=8)

    plt.tight_layout(rect=[0, 0.03, 1, 0.95])
    plt.savefig(filename, dpi=150, bbox_inches='tight', facecolor='white')
    plt.close(fig)
    return filename
