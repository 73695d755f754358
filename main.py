# Standard library imports
import os
import sys
import time
import glob
import argparse
import multiprocessing
import concurrent.futures
import logging
import csv
import json
from datetime import datetime

# Third-party imports
import numpy as np

# Local imports
import kernels
from charts import plot_benchmark
from doc import create_report
from engine_config import EDGE_MODES, OVERFLOW_MODES, PARTITION_STRATEGIES, EngineConfig, load_config
from engine_errors import FilterEngineError
from filters import FilterKind, process_buffer, process_image, resolve_filter
from pixel_buffer import load_image, save_image, to_buffer

logger = logging.getLogger(__name__)

INPUT_DIR = './input_images'
OUTPUT_DIR = './output_images'
IMAGE_PATTERNS = ('*.jpg', '*.jpeg', '*.png', '*.gif')

PARADIGMS = {
    'Threads': concurrent.futures.ThreadPoolExecutor,
    'Processes': concurrent.futures.ProcessPoolExecutor,
}


# === BENCHMARK TRANSCRIPT ===
class BenchmarkTranscript:
    """Echoes benchmark lines to the console and keeps a copy in a text file."""

    def __init__(self, path):
        self.path = path
        self._file = open(path, 'w', encoding='utf-8')

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def line(self, message=""):
        print(message)
        self._file.write(message + "\n")
        self._file.flush()

    def rule(self, char="=", width=60):
        self.line(char * width)

    def close(self):
        self._file.close()


def next_free_path(path):
    """``path`` itself if unused, otherwise the first free ``<stem>_<n><ext>``."""
    stem, ext = os.path.splitext(path)
    candidate, n = path, 0
    while os.path.exists(candidate):
        n += 1
        candidate = f"{stem}_{n}{ext}"
    return candidate


def get_image_files(input_dir):
    files = []
    for pattern in IMAGE_PATTERNS:
        files.extend(glob.glob(os.path.join(input_dir, pattern)))
    return sorted(files)


def build_config(args):
    config = load_config(args.config) if args.config else EngineConfig()
    changes = {}
    for name in ('workers', 'partition', 'edge_mode', 'overflow'):
        value = getattr(args, name, None)
        if value is not None:
            changes[name] = value
    if getattr(args, 'lenient', False):
        changes['strict'] = False
    return config.replace(**changes)


# === COMMANDS ===

def cmd_list(args):
    print("Filters:")
    for kind in FilterKind:
        print(f"  {kind.name.lower():<16} ({kind.value})")
    print("\nKernels:")
    for name, kernel in kernels.PRESETS.items():
        print(f"  {name}: {kernel.width}x{kernel.height}, origin {kernel.origin}")
        for row in range(kernel.height):
            weights = kernel.matrix[row * kernel.width:(row + 1) * kernel.width]
            print("    " + " ".join(f"{w:8.4f}" for w in weights))
    return 0


def cmd_apply(args):
    kind = resolve_filter(args.filter)
    if kind is None:
        logger.error(f"Unknown filter: {args.filter}")
        return 2

    config = build_config(args)
    os.makedirs(args.output_dir, exist_ok=True)
    failed = 0
    for path in args.inputs:
        try:
            image = load_image(path)
        except OSError as e:
            logger.error(f"Couldn't read the image {path}: {e}")
            failed += 1
            continue

        start = time.time()
        try:
            result = process_image(image, kind, config)
        except FilterEngineError as e:
            logger.error(f"{path}: {e}")
            failed += 1
            continue
        if result is None:
            logger.error(f"{path}: {kind.value} needs a larger image ({image.size[0]}x{image.size[1]})")
            failed += 1
            continue

        out_path = os.path.join(args.output_dir, os.path.basename(path))
        save_image(result, out_path)
        logger.info(f"{path} -> {out_path} ({kind.value}, {time.time() - start:.4f}s)")
    return 1 if failed else 0


# === BENCHMARK ===

def run_filters(images, filter_kinds, config, executor=None):
    """
    Apply every filter to every image once.

    Returns ``(image name, filter, error)`` for each combination the engine
    rejected; those are skipped and the run carries on.
    """
    failures = []
    for name, buffer, width, height in images:
        for kind in filter_kinds:
            try:
                process_buffer(buffer, width, height, kind, config, executor)
            except FilterEngineError as e:
                failures.append((name, kind, e))
    return failures


def run_benchmark_sequential(images, filter_kinds, config):
    # workers=1 is a single band, run on the calling thread
    start = time.time()
    failures = run_filters(images, filter_kinds, config.replace(workers=1))
    return time.time() - start, failures


def run_benchmark_parallel(images, filter_kinds, config, paradigm, num_workers):
    start = time.time()
    with PARADIGMS[paradigm](max_workers=num_workers) as executor:
        failures = run_filters(images, filter_kinds, config.replace(workers=num_workers), executor)
    return time.time() - start, failures


def note_failures(transcript, failures, indent="  "):
    for name, kind, error in failures:
        transcript.line(f"{indent}skipped {kind.value} on {name}: {error}")


def save_results(output_dir, results, t_seq, num_imgs, filter_kinds):
    csv_file = next_free_path(os.path.join(output_dir, 'benchmark_results.csv'))
    with open(csv_file, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['Paradigm', 'Workers', 'Time (s)', 'Speedup', 'Efficiency', 'Skipped'])
        for paradigm in results:
            for workers in sorted(results[paradigm].keys()):
                data = results[paradigm][workers]
                writer.writerow([
                    paradigm,
                    workers,
                    f"{data['time']:.4f}",
                    f"{data['speedup']:.4f}",
                    f"{data['efficiency']:.4f}",
                    data['skipped'],
                ])

    json_file = next_free_path(os.path.join(output_dir, 'benchmark_results.json'))
    json_data = {
        'timestamp': datetime.now().isoformat(),
        'num_images': num_imgs,
        'filters': [kind.name.lower() for kind in filter_kinds],
        'cpu_cores': multiprocessing.cpu_count(),
        'sequential_time': t_seq,
        'results': results
    }
    with open(json_file, 'w', encoding='utf-8') as f:
        json.dump(json_data, f, indent=2)
    return csv_file, json_file


def cmd_benchmark(args):
    filter_kinds = [resolve_filter(name) for name in args.filter] if args.filter else list(FilterKind)
    unknown = [name for name, kind in zip(args.filter or [], filter_kinds) if kind is None]
    if unknown:
        logger.error(f"Unknown filter(s): {', '.join(unknown)}")
        return 2

    os.makedirs(args.output_dir, exist_ok=True)
    transcript_path = next_free_path(os.path.join(args.output_dir, 'benchmark_output.txt'))
    with BenchmarkTranscript(transcript_path) as out:
        files = get_image_files(args.input_dir)
        if not files:
            out.line(f"No images found in {args.input_dir}.")
            return 1

        images = []
        for path in files:
            image = load_image(path)
            images.append((os.path.basename(path), to_buffer(image), image.size[0], image.size[1]))
        num_imgs = len(images)
        config = build_config(args)

        out.rule()
        out.line("FILTER ENGINE BENCHMARK")
        out.rule()
        out.line(f"Number of images: {num_imgs}")
        out.line(f"Filters: {', '.join(kind.value for kind in filter_kinds)}")
        out.line(f"CPU cores available: {multiprocessing.cpu_count()}")
        out.line(f"Engine: {config!r}")
        out.line(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        out.line()
        out.rule("-")
        out.line("Sequential baseline (single band)")
        out.rule("-")
        t_seq, failures = run_benchmark_sequential(images, filter_kinds, config)
        note_failures(out, failures)
        out.line(f"Total time (sequential): {t_seq:.4f} seconds")
        out.line(f"Average time per image: {t_seq / num_imgs:.4f} seconds")

        results = {paradigm: {} for paradigm in PARADIGMS}
        for w in args.worker_counts:
            out.line()
            out.rule(width=40)
            out.line(f"Testing with {w} worker(s)")
            out.rule(width=40)
            for paradigm in PARADIGMS:
                t, failures = run_benchmark_parallel(images, filter_kinds, config, paradigm, w)
                speedup = t_seq / t if t > 0 else 0
                efficiency = speedup / w
                results[paradigm][w] = {'time': t, 'speedup': speedup, 'efficiency': efficiency,
                                        'skipped': len(failures)}
                out.line(f"  {paradigm:<10} Time: {t:.4f}s | Speedup: {speedup:.2f}x | "
                         f"Efficiency: {efficiency:.2%}")
                note_failures(out, failures, indent="    ")

        csv_file, json_file = save_results(args.output_dir, results, t_seq, num_imgs, filter_kinds)
        out.line(f"\n✓ Saved CSV: {csv_file}")
        out.line(f"✓ Saved JSON: {json_file}")

        chart_file = next_free_path(os.path.join(args.output_dir, 'performance_analysis.png'))
        plot_benchmark(results, args.worker_counts, chart_file, t_seq=t_seq)
        out.line(f"✓ Saved chart: {chart_file}")

        if args.report:
            pdf_file = next_free_path(os.path.join(args.output_dir, 'benchmark_report.pdf'))
            create_report(results, args.worker_counts, chart_file, pdf_file,
                          num_images=num_imgs, t_seq=t_seq,
                          filters=[kind.value for kind in filter_kinds])
            out.line(f"✓ Saved report: {pdf_file}")

        all_speedups = [(results[p][w]['speedup'], p, w) for p in results for w in results[p]]
        best_speedup, best_paradigm, best_workers = max(all_speedups)
        mean_eff = np.mean([results[p][w]['efficiency'] for _, p, w in all_speedups])
        out.line(f"\nBest configuration: {best_paradigm} with {best_workers} workers ({best_speedup:.2f}x)")
        out.line(f"Mean parallel efficiency: {mean_eff:.2%}")
        out.line(f"Benchmark output: {out.path}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="Apply parallel image filters.")
    parser.add_argument('-v', '--verbose', action='store_true', help="debug logging")
    sub = parser.add_subparsers(dest='command', required=True)

    def add_engine_options(p):
        p.add_argument('--config', help="INI file with an [engine] section")
        p.add_argument('--workers', type=int, help="number of bands/worker threads")
        p.add_argument('--partition', choices=PARTITION_STRATEGIES)
        p.add_argument('--edge-mode', dest='edge_mode', choices=EDGE_MODES)
        p.add_argument('--overflow', choices=OVERFLOW_MODES)
        p.add_argument('--lenient', action='store_true',
                       help="treat failed bands as partial results instead of errors")

    p_apply = sub.add_parser('apply', help="filter one or more images")
    p_apply.add_argument('inputs', nargs='+', help="image files (jpg, png, gif)")
    p_apply.add_argument('--filter', '-f', required=True, help="filter name, e.g. gaussian_blur")
    p_apply.add_argument('--output-dir', '-o', default=OUTPUT_DIR)
    add_engine_options(p_apply)
    p_apply.set_defaults(func=cmd_apply)

    p_list = sub.add_parser('list', help="show filters and kernel presets")
    p_list.set_defaults(func=cmd_list)

    p_bench = sub.add_parser('benchmark', help="time threads vs processes per worker count")
    p_bench.add_argument('--input-dir', default=INPUT_DIR)
    p_bench.add_argument('--output-dir', default=OUTPUT_DIR)
    p_bench.add_argument('--filter', '-f', action='append', help="filter to time (repeatable, default all)")
    p_bench.add_argument('--report', action='store_true', help="also write a PDF report")
    p_bench.add_argument('--worker-counts', dest='worker_counts', type=int, nargs='+',
                         help="worker counts to compare (default 1 2 4 8, plus 16 on large machines)")
    add_engine_options(p_bench)
    p_bench.set_defaults(func=cmd_benchmark)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.command == 'benchmark' and not args.worker_counts:
        args.worker_counts = [1, 2, 4, 8]
        if multiprocessing.cpu_count() >= 16:
            args.worker_counts.append(16)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
