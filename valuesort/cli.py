import click
import sys
import json
import logging
import time
from typing import Optional

from .errors import DegenerateCatalogueError, InvalidDecisionError
from .rating import is_confident
from .ranker import (
    ValueRanker,
    read_input,
    parse_input,
    assign_levels,
    assign_custom_quantiles,
)


class Config:
    def __init__(
        self,
        input,
        output,
        state,
        queries,
        levels,
        quantiles,
        progress,
        visualize,
        reset,
        verbose,
        format="csv",
    ):
        self.input = input
        self.output = output
        self.state = state
        self.queries = queries
        self.levels = levels
        self.quantiles = quantiles
        self.progress = progress
        self.visualize = visualize
        self.reset = reset
        self.verbose = verbose
        self.format = format


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def print_estimates(model: ValueRanker) -> None:
    report = model.progress()
    print(f"\nProgress: {report.percent}% ({len(model.decisions)} decisions, {model.phase})")
    print("\nCurrent rankings:")
    for rank, item in enumerate(model.ranked_items(), 1):
        print(f"{rank:>3}. {item.name}: rating = {item.rating:.1f}, rd = {item.rd:.1f}, matches = {item.match_count}")


def print_conflicts(model: ValueRanker) -> None:
    if not len(model.conflict_log):
        print("No hard choices yet.")
        return
    print("\nHard choices:")
    for record in reversed(model.conflicts):
        print(
            f"  {record.pair[0]} vs {record.pair[1]}: "
            f"{record.duration_ms / 1000:.1f}s, chose {record.winner}"
        )


def print_progress(model: ValueRanker) -> None:
    report = model.progress()
    line = f"[{report.percent}%] {report.message}"
    if report.note:
        line += f" ({report.note})"
    print(click.style(line, fg="cyan"))


@click.command()
@click.option(
    "--input",
    "input_file",
    default=None,
    help="items to rank: a CSV file with one item per line, or a comma-separated list. Default: the built-in list of values.",
)
@click.option(
    "--output",
    required=False,
    help="output file: a file to write the final results to. Default: printing to stdout.",
)
@click.option(
    "--state",
    type=str,
    help="Session file: resumed if it exists, saved after every decision",
)
@click.option(
    "--queries",
    default=None,
    type=int,
    help="Maximum number of questions to ask in this run; default: until you quit.",
)
@click.option(
    "--levels",
    default=None,
    type=click.IntRange(min=1),
    help="The highest level; rated items will be discretized into 1–l levels.",
)
@click.option(
    "--quantiles",
    default=None,
    type=str,
    help="What fraction to allocate to each level; space-separated; overrides `--levels`.",
)
@click.option(
    "--progress",
    is_flag=True,
    help="Print the current rankings after every decision",
)
@click.option(
    "--visualize",
    is_flag=True,
    help="Show ASCII visualization of rankings",
)
@click.option(
    "--reset",
    is_flag=True,
    help="Discard the saved session and start over",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Log engine decisions to stderr",
)
@click.option(
    "--format",
    type=click.Choice(["csv", "json", "markdown"]),
    default="csv",
    help="Output format for the rankings",
)
def main(
    input_file: Optional[str],
    output: Optional[str],
    state: Optional[str],
    queries: Optional[int],
    levels: Optional[int],
    quantiles: Optional[str],
    progress: bool,
    visualize: bool,
    reset: bool,
    verbose: bool,
    format: str,
) -> None:
    config: Config = Config(
        input_file,
        output,
        state,
        queries,
        levels,
        quantiles,
        progress,
        visualize,
        reset,
        verbose,
        format,
    )
    setup_logging(config.verbose)

    names = None
    if config.input:
        try:
            names = parse_input(read_input(config.input))
        except FileNotFoundError:
            print("Input file not found.")
            return

    try:
        if config.state:
            model = ValueRanker.load_or_create(config.state, names)
        else:
            model = ValueRanker(names)
    except DegenerateCatalogueError as exc:
        print(f"Cannot rank: {exc}")
        sys.exit(1)

    if config.reset:
        model.request_reset()
        print("Session reset.")
    if model.decisions:
        print(f"Resuming session with {len(model.decisions)} decisions.")
    print_progress(model)

    print(
        "Comparison commands: 1=first is better, 2=second is better, p=print estimates, "
        "c=show hard choices, r=reset, q=quit"
    )

    asked = 0
    response = None
    while config.queries is None or asked < config.queries:
        pair = model.next_pair()
        first, second = pair.names
        if pair.is_auto:
            print(click.style(f"\n{pair.reason}", fg="magenta"))
            print(f"Auto: '{pair.resolution.winner}' over '{pair.resolution.loser}'")
            if config.state:
                model.save_state(config.state)
            continue

        print(f"\nComparison {len(model.decisions) + 1}")
        if pair.is_tie_breaker:
            print(click.style(f"TIE BREAKER - {pair.reason}", fg="yellow"))

        started = time.monotonic()
        while True:
            response = input(
                f"Which matters more: 1) '{click.style(first, fg='green')}' "
                f"or 2) '{click.style(second, fg='green')}'? "
            ).strip().lower()
            if response in ["1", "2"]:
                elapsed_ms = int((time.monotonic() - started) * 1000)
                try:
                    decision = model.submit_decision(pair.pair_id, int(response) - 1, elapsed_ms)
                except InvalidDecisionError as exc:
                    print(f"Rejected: {exc}")
                    continue
                asked += 1
                if is_confident(decision.duration_ms, decision.auto):
                    print(click.style("CONFIDENT", fg="yellow"))
                if config.state:
                    model.save_state(config.state)
                print_progress(model)
                break
            elif response == "p":
                print_estimates(model)
            elif response == "c":
                print_conflicts(model)
            elif response == "r":
                if click.confirm("Start over completely?", default=False):
                    model.request_reset()
                    if config.state:
                        model.save_state(config.state)
                    print("Session reset.")
                    break
            elif response == "q":
                print("Quitting...")
                break
            else:
                print("Invalid input. Please enter 1, 2, p, c, r, or q.")

        if response == "q":
            break

        if config.progress:
            print_estimates(model)

    ranked = [item.name for item in model.ranked_items()]
    output_data = model.export_rankings("csv")

    if config.levels:
        level_assignments = assign_levels(ranked, config.levels)
        output_data["Level"] = [level_assignments[name] for name in output_data["Item"]]
    elif config.quantiles:
        quantile_cutoffs = [float(x) for x in config.quantiles.split(" ")]
        quantile_assignments = assign_custom_quantiles(ranked, quantile_cutoffs)
        output_data["Quantile"] = [quantile_assignments[name] for name in output_data["Item"]]

    if config.format == "json":
        result = model.export_rankings("json")
        if "Level" in output_data.columns:
            result["levels"] = dict(zip(output_data["Item"], output_data["Level"].astype(int).tolist()))
        elif "Quantile" in output_data.columns:
            result["quantiles"] = dict(zip(output_data["Item"], output_data["Quantile"].astype(int).tolist()))
        text = json.dumps(result, indent=2)
    elif config.format == "markdown":
        text = model.export_rankings("markdown")
    else:
        text = None

    if not config.output:
        if text is not None:
            print(text)
        else:
            output_data.to_csv(sys.stdout, index=False)
    else:
        if text is not None:
            with open(config.output, "w") as f:
                f.write(text)
        else:
            output_data.to_csv(config.output, index=False)

    if config.visualize:
        model.visualize_rankings()

    if config.state:
        model.save_state(config.state)
        print(f"Saved state to {config.state}")


if __name__ == "__main__":
    main()
