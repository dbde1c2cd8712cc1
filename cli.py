#!/usr/bin/env python3
"""
pointclass - Command Line Interface

Trening modelu i klasyfikacja chmur punktów LAS/LAZ.

Usage:
    python cli.py train labeled1.las labeled2.las --model model.bin
    python cli.py classify input.las output.las --model model.bin

Examples:
    # Trening na wybranych klasach ASPRS (grunt, budynek)
    python cli.py train data/train.las --model models/model.bin --classes 2 6

    # Klasyfikacja z wygładzaniem graph-cut
    python cli.py classify data/chmura.las output/chmura.las --model models/model.bin --regularization graphcut

    # Tylko punkty niesklasyfikowane, z ewaluacją i statystykami JSON
    python cli.py classify data/chmura.las output/chmura.las --model models/model.bin \\
        --unclassified-only --eval --stats-file output/stats.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pointclass.config import CLASSIFICATION, TRAINING
from pointclass.core import LASLoader
from pointclass.ml.classifiers import ClassifierType
from pointclass.pipeline import TrainingPipeline, TrainingConfig, ClassificationPipeline, ClassifyConfig


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="pointclass - klasyfikacja chmur punktów LAS/LAZ (las losowy + regularyzacja)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Klasy ASPRS:
  2  - Grunt
  3  - Roślinność niska
  4  - Roślinność średnia
  5  - Roślinność wysoka
  6  - Budynek
  9  - Woda
  11 - Droga

Tryby regularyzacji:
  none          - arg-max per punkt
  local_smooth  - uśrednianie prawdopodobieństw w promieniu --reg-radius
  graphcut      - alpha-expansion w partycjach siatki
        """
    )

    # Verbosity
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimalne wyjście (tylko błędy)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Szczegółowe wyjście"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Train
    train = subparsers.add_parser("train", help="Trening modelu na plikach z etykietami")
    train.add_argument("inputs", nargs="+", help="Pliki LAS/LAZ z klasyfikacją")
    train.add_argument("--model", "-m", default="model.bin", help="Plik wyjściowy modelu")
    train.add_argument(
        "--classifier",
        choices=[t.value for t in ClassifierType],
        default=ClassifierType.RANDOM_FOREST.value,
        help="Typ klasyfikatora"
    )
    train.add_argument(
        "--classes",
        type=int,
        nargs="*",
        default=[],
        help="Kody ASPRS klas do treningu (domyślnie wszystkie)"
    )
    train.add_argument("--max-samples", type=int, default=TRAINING.MAX_SAMPLES, help="Maks. próbek na klasę")
    train.add_argument("--scales", type=int, default=TRAINING.NUM_SCALES, help="Liczba skal cech")
    train.add_argument("--radius", type=float, default=TRAINING.RADIUS, help="Promień sąsiedztwa pierwszej skali (m)")
    train.add_argument(
        "--resolution",
        type=float,
        default=TRAINING.START_RESOLUTION,
        help="Rozdzielczość startowa (m); <= 0 = średnia gęstość punktów"
    )
    train.add_argument("--trees", type=int, default=TRAINING.N_TREES, help="Liczba drzew")
    train.add_argument("--max-depth", type=int, default=TRAINING.MAX_DEPTH, help="Maks. głębokość drzewa")
    train.add_argument("--threads", type=int, default=CLASSIFICATION.N_THREADS, help="Liczba wątków")

    # Classify
    classify = subparsers.add_parser("classify", help="Klasyfikacja chmury punktów")
    classify.add_argument("input", help="Plik wejściowy LAS/LAZ")
    classify.add_argument("output", help="Plik wyjściowy LAS/LAZ")
    classify.add_argument("--model", "-m", required=True, help="Plik modelu")
    classify.add_argument(
        "--regularization",
        default=CLASSIFICATION.REGULARIZATION,
        help="none | local_smooth | graphcut"
    )
    classify.add_argument("--reg-radius", type=float, default=CLASSIFICATION.REG_RADIUS, help="Promień local_smooth (m)")
    classify.add_argument("--color", action="store_true", help="Zapisz kolory klas zamiast kodów")
    classify.add_argument("--unclassified-only", action="store_true", help="Klasyfikuj tylko punkty niesklasyfikowane")
    classify.add_argument("--eval", action="store_true", help="Ewaluacja względem klasyfikacji z pliku")
    classify.add_argument("--skip", type=int, nargs="*", default=[], help="Kody ASPRS, których nie zapisujemy")
    classify.add_argument("--stats-file", default=None, help="Plik JSON ze statystykami ewaluacji")
    classify.add_argument("--report", "-r", default=None, help="Plik raportu JSON z przebiegu")
    classify.add_argument("--threads", type=int, default=CLASSIFICATION.N_THREADS, help="Liczba wątków")

    return parser.parse_args(argv)


def run_train(args) -> None:
    config = TrainingConfig(
        input_files=args.inputs,
        model_path=args.model,
        classifier_type=ClassifierType(args.classifier),
        num_scales=args.scales,
        radius=args.radius,
        start_resolution=args.resolution,
        max_samples=args.max_samples,
        asprs_classes=args.classes,
        n_trees=args.trees,
        max_depth=args.max_depth,
        n_jobs=args.threads
    )
    TrainingPipeline(config).run()

    if not args.quiet:
        print(f"Model zapisany: {args.model}")


def run_classify(args) -> None:
    input_path = Path(args.input)
    if input_path.suffix.lower() not in ['.las', '.laz']:
        raise ValueError(f"Nieobsługiwany format pliku: {input_path.suffix}")

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if not args.quiet:
        file_info = LASLoader.get_file_info(str(input_path))
        print(f"Wejście: {input_path} ({file_info['n_points']:,} punktów, LAS {file_info['version']})")

    config = ClassifyConfig(
        input_path=str(input_path),
        output_path=str(output_path),
        model_path=args.model,
        regularization=args.regularization,
        reg_radius=args.reg_radius,
        use_colors=args.color,
        unclassified_only=args.unclassified_only,
        evaluate=args.eval,
        skip=args.skip,
        stats_file=args.stats_file,
        n_threads=args.threads
    )
    stats = ClassificationPipeline(config).run()

    if args.report:
        report_path = Path(args.report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_data = {
            "metadata": {
                "input_file": str(input_path),
                "output_file": str(output_path),
                "model": args.model,
                "regularization": args.regularization
            },
            "statistics": stats
        }
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)

    if not args.quiet:
        print("=" * 60)
        print(f"Zapisano: {output_path}")
        print(f"Punkty: {stats['n_points']:,} (robocze: {stats['n_base_points']:,})")
        print(f"Czas: {stats['processing_time']:.1f}s")
        if 'evaluation' in stats:
            print(f"Dokładność: {stats['evaluation']['accuracy']:.2%}")
        print("=" * 60)


def main(argv=None) -> int:
    """Main CLI entry point"""
    args = parse_args(argv)

    # Setup logging
    if args.quiet:
        logging.basicConfig(level=logging.ERROR)
    elif args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s'
        )

    try:
        if args.command == "train":
            run_train(args)
        else:
            run_classify(args)
    except Exception as e:
        print(f"Błąd: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
