"""
Demo pipelines for the ``examples``, ``ml-pipeline`` and ``text-pipeline`` commands.

Each pipeline runs in its own session, touches every facade, prints its
progress to a rich console and returns a summary dict. Calls into missing
toolchains come back DEGRADED; their labels are listed under ``degraded``
in the summary. The session is closed when the pipeline finishes.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any

from rich.console import Console

from .adapters.base import AdapterResult
from .core.errors import ExecutionError
from .core.registry import WormRegistry

logger = logging.getLogger(__name__)

LANGUAGES = ["Native", "Python", "C++", "Go"]


def _step(console: Console, number: int, title: str) -> None:
    console.print(f"\n[bold cyan]{number}. {title}[/bold cyan]")


def _track(result: AdapterResult, degraded: list[str]) -> AdapterResult:
    if result.degraded:
        degraded.append(result.label)
    return result


async def _try_external(console: Console, label: str, call: Any, degraded: list[str]) -> AdapterResult | None:
    """Await an external call; a failing snippet is reported and skipped."""
    try:
        result = await call
    except ExecutionError as e:
        last_line = (e.stderr.strip().splitlines() or [""])[-1]
        console.print(f"   {label}: [red]failed[/red] ({last_line})", highlight=False)
        return None
    marker = " [yellow](simulated)[/yellow]" if result.degraded else ""
    console.print(f"   {label} = {result.value}{marker}", highlight=False)
    return _track(result, degraded)


def _entities(words: list[str]) -> list[str]:
    """Capitalised words that do not start a sentence, first occurrence order."""
    found: list[str] = []
    previous = ""
    for word in words:
        clean = word.strip("!.,?")
        starts_sentence = not previous or previous[-1] in "!.?"
        if clean[:1].isupper() and not starts_sentence and clean not in found:
            found.append(clean)
        previous = word
    return found


async def run_examples(registry: WormRegistry, console: Console | None = None) -> dict[str, Any]:
    """Walk through the basic API of every facade."""
    console = console or Console()
    console.print("[bold]=== WORM examples ===[/bold]")
    session = registry.create_session("demo")
    summary: dict[str, Any] = {}
    degraded: list[str] = []

    try:
        _step(console, 1, "Native API")
        summary["double"] = session.js.function(lambda x: x * 2, "double").call(5)
        numbers = session.js.array([1, 2, 3, 4, 5])
        summary["sum"] = numbers.sum()
        summary["mean"] = numbers.mean()
        summary["upper"] = str(session.js.string("hello world").to_upper())
        summary["sqrt"] = session.js.math.sqrt(16)
        summary["pow"] = session.js.math.pow(2, 3)
        console.print(f"   double(5) = {summary['double']}")
        console.print(f"   [1,2,3,4,5].sum() = {summary['sum']}, mean() = {summary['mean']}")
        console.print(f"   'hello world'.to_upper() = {summary['upper']!r}")
        console.print(f"   math.sqrt(16) = {summary['sqrt']}, math.pow(2, 3) = {summary['pow']}")

        _step(console, 2, "Python API")
        numpy = session.python.import_module("numpy")
        result = await _try_external(
            console, "numpy.array([1,2,3,4,5]).mean()", numpy.array([1, 2, 3, 4, 5]).mean(), degraded
        )
        summary["python_mean"] = result.value if result else None

        _step(console, 3, "C++ API")
        cpp_math = session.cpp.math
        for key, res in (
            ("cpp_sqrt", cpp_math.sqrt(25)),
            ("cpp_sin", cpp_math.sin(1.57)),
            ("cpp_pow", cpp_math.pow(2, 8)),
        ):
            summary[key] = _track(res, degraded).value
            console.print(f"   {res.label} = {res.value:.3f}", highlight=False)

        _step(console, 4, "Go API")
        go_installed = await session.go.adapter.check_installation()
        summary["go_available"] = go_installed
        console.print(f"   Go toolchain {'available' if go_installed else 'not installed'}")
        result = await _try_external(
            console, 'strings.ToUpper("hello")', session.go.strings.to_upper("hello"), degraded
        )
        summary["go_upper"] = result.value if result else None

        _step(console, 5, "Chained operations")
        summary["chain"] = session.js.array([1, 2, 3, 4, 5]).map(lambda x: x * 2).filter(lambda x: x > 5).to_list()
        session.set("myData", [10, 20, 30])
        summary["stored"] = session.get("myData")
        console.print(f"   [1,2,3,4,5] -> map(*2) -> filter(>5) = {summary['chain']}")
        console.print(f"   Stored data: {summary['stored']}")

        _step(console, 6, "Operation history")
        for index, record in enumerate(session.history[-3:], start=1):
            console.print(f"   {index}. {record.operation} -> {record.result}", markup=False)

        _step(console, 7, "Fluent chain")
        summary["even_squares_sum"] = (
            session.js.array(range(1, 11))
            .filter(lambda x: x % 2 == 0)
            .map(lambda x: x * x)
            .reduce(lambda a, b: a + b, 0)
        )
        console.print(f"   [1..10] -> filter(even) -> map(square) -> sum = {summary['even_squares_sum']}")

        summary["history_length"] = len(session.history)
        summary["degraded"] = degraded
    finally:
        registry.close_session("demo")

    logger.info("Examples finished (%d degraded calls)", len(degraded))
    return summary


async def machine_learning_pipeline(
    registry: WormRegistry,
    seed: int | None = None,
    console: Console | None = None,
    epochs: int = 5,
    learning_rate: float = 0.5,
) -> dict[str, Any]:
    """
    Toy classifier trained across the facades.

    Data preparation runs natively, feature statistics go through Python
    (numpy), the error metric through C++ math and the label check through
    Go. A fixed ``seed`` makes the noise term reproducible.
    """
    console = console or Console()
    rng = random.Random(seed)
    console.print("[bold]=== WORM ML pipeline ===[/bold]")
    session = registry.create_session("ml_pipeline")
    degraded: list[str] = []

    try:
        _step(console, 1, "Data preparation")
        raw = [
            {"x": i / 10, "y": math.sin(i / 10) + rng.random() * 0.1, "label": 1 if math.sin(i / 10) > 0 else 0}
            for i in range(100)
        ]
        session.set("raw_data", raw)
        console.print(f"   Generated {len(raw)} samples")

        _step(console, 2, "Preprocessing")
        xs = session.js.array([d["x"] for d in raw])
        labels = [d["label"] for d in raw]
        min_x, max_x = min(xs), max(xs)
        normalized = xs.map(lambda x: (x - min_x) / (max_x - min_x)).to_list()
        session.set("features", normalized).set("labels", labels)
        console.print(f"   Normalized: min={min_x:.2f}, max={max_x:.2f}")

        _step(console, 3, "Feature engineering (Python)")

        def engineer(x: float) -> list[float]:
            return [x, x * x, math.sin(x * math.pi), 1.0 if x > 0.5 else 0.0]

        engineered = [engineer(x) for x in normalized]
        session.set("engineered_features", engineered)
        numpy = session.python.import_module("numpy")
        await _try_external(console, "mean(normalized)", numpy.array(normalized).mean(), degraded)
        console.print(f"   Built {len(engineered[0])} features per sample")

        _step(console, 4, "Training (C++ math)")
        weights = [0.1, 0.1, 0.1, 0.1]
        losses: list[float] = []
        n = len(engineered)
        for epoch in range(epochs):
            errors = [sum(w * f for w, f in zip(weights, row)) - y for row, y in zip(engineered, labels)]
            loss = sum(e * e for e in errors) / n
            losses.append(loss)
            gradient = [2 / n * sum(e * row[j] for e, row in zip(errors, engineered)) for j in range(len(weights))]
            weights = [w - learning_rate * g for w, g in zip(weights, gradient)]
            console.print(f"   Epoch {epoch + 1}: loss = {loss:.4f}")
        rmse = _track(session.cpp.math.sqrt(losses[-1]), degraded)
        session.set("model_weights", weights)
        console.print(f"   RMSE = {rmse.value:.4f}")

        _step(console, 5, "Evaluation (Go)")

        def predict_row(row: list[float]) -> int:
            return 1 if sum(w * f for w, f in zip(weights, row)) > 0.5 else 0

        test_rows, test_labels = engineered[:20], labels[:20]
        correct = sum(1 for row, y in zip(test_rows, test_labels) if predict_row(row) == y)
        accuracy = correct / len(test_rows)
        label_text = "".join(str(y) for y in test_labels)
        await _try_external(
            console, 'strings.Contains(labels, "1")', session.go.strings.contains(label_text, "1"), degraded
        )
        console.print(f"   Accuracy: {accuracy * 100:.2f}% ({correct}/{len(test_rows)})")

        _step(console, 6, "Prediction")
        predict = session.js.function(lambda x: predict_row(engineer((x - min_x) / (max_x - min_x))), "ml_predict")
        prediction = predict.call(1.5)
        console.print(f"   Prediction for x=1.5: {prediction}")

        summary = {
            "data_points": len(raw),
            "features": len(engineered[0]),
            "weights": weights,
            "losses": losses,
            "rmse": rmse.value,
            "accuracy": accuracy,
            "prediction": prediction,
            "languages": list(LANGUAGES),
            "degraded": degraded,
            "history": [record.operation for record in session.history[-5:]],
        }
        session.set("pipeline_result", summary)

        _step(console, 7, "Recent operations")
        for index, operation in enumerate(summary["history"], start=1):
            console.print(f"   {index}. {operation}", markup=False)
    finally:
        registry.close_session("ml_pipeline")

    logger.info("ML pipeline finished (%d degraded calls)", len(degraded))
    return summary


async def text_processing_pipeline(registry: WormRegistry, console: Console | None = None) -> dict[str, Any]:
    """Split, case-fold and scan a sentence through the facades."""
    console = console or Console()
    console.print("[bold]=== WORM text processing pipeline ===[/bold]")
    session = registry.create_session("text_processing")
    degraded: list[str] = []
    text = (
        "Hello World! This is a WORM text processing example. "
        "WORM can handle multiple languages seamlessly."
    )

    try:
        _step(console, 1, "Input")
        console.print(f'   "{text}"', markup=False)

        _step(console, 2, "Native processing")
        value = session.js.string(text)
        words = value.split(" ")
        word_count = words.length()
        upper = str(value.to_upper())
        console.print(f"   Words: {word_count}")
        console.print(f'   Upper: "{upper}"', markup=False)

        _step(console, 3, "Go string processing")
        contains = await _try_external(
            console, 'strings.Contains(text, "WORM")', session.go.strings.contains(text, "WORM"), degraded
        )
        contains_worm = contains.value if contains else "WORM" in text
        average = words.map(len).sum() / word_count
        console.print(f"   Average word length: {average:.2f}")

        _step(console, 4, "Python NLP")
        sentiment = "positive" if "!" in text else "neutral"
        entities = _entities(words.to_list())
        await _try_external(
            console, "python word count", session.python.execute(f"print(len({text!r}.split()))"), degraded
        )
        console.print(f"   Sentiment: {sentiment}")
        console.print(f"   Entities: {', '.join(entities)}")

        _step(console, 5, "C++ metrics")
        length_root = _track(session.cpp.math.sqrt(len(text)), degraded)
        console.print(f"   sqrt(characters) = {length_root.value:.3f}")

        summary = {
            "original": text,
            "word_count": word_count,
            "upper": upper,
            "contains_worm": contains_worm,
            "average_word_length": average,
            "sentiment": sentiment,
            "entities": entities,
            "processed_by": ["Native", "Go", "Python", "C++"],
            "degraded": degraded,
        }
        session.set("text_processing_result", summary)
        console.print("\n   Unified result stored in session")
    finally:
        registry.close_session("text_processing")

    logger.info("Text pipeline finished (%d degraded calls)", len(degraded))
    return summary
