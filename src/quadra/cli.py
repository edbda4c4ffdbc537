"""Command-line interface for quadra."""

import logging

import click

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.version_option(version="0.1.0")
@click.option("--log-level", default="WARNING", type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help="Logging level for engine messages")
def cli(log_level: str):
    """Quadra - groups, Super-X rotations, brackets and rankings for pairs tournaments."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_cfg(config):
    """Load the YAML config, or the defaults when no file is given."""
    from quadra.config_loader import load_and_validate_config, validate_config

    if config:
        click.echo(f"[INFO] Loading config from: {config}")
        return load_and_validate_config(config)
    return validate_config({})


def _check_cohort(cfg: dict, stage_format, num_entrants: int):
    """Reject a config written for another format or another cohort size."""
    from quadra.validation import ValidationError

    if cfg["format"] and cfg["format"] != stage_format:
        raise ValidationError(
            f"Config format is {cfg['format'].value}, this command builds a {stage_format.value} stage",
            field="format",
        )
    if cfg["cohort_size"] is not None and cfg["cohort_size"] != num_entrants:
        raise ValidationError(
            f"Config cohort_size is {cfg['cohort_size']}, found {num_entrants} entrants",
            field="cohort_size",
        )


def _open_session(database: str):
    from quadra.storage import DatabaseManager

    db = DatabaseManager(database)
    db.create_tables()
    return db.get_session()


def _echo_standings(title: str, records, names: dict):
    click.echo(f"\n{title}")
    click.echo(f"  {'#':>2}  {'Entrant':<24} {'Pts':>4} {'W':>3} {'L':>3} {'GB':>4} {'GW':>4} {'SB':>4}")
    for r in records:
        mark = " *" if getattr(r, "qualified", False) else ""
        click.echo(
            f"  {r.rank_position or '-':>2}  {names.get(r.entrant_id, r.entrant_id):<24} "
            f"{r.points:>4} {r.wins:>3} {r.losses:>3} {r.game_balance:>4} {r.games_won:>4} "
            f"{r.set_balance:>4}{mark}"
        )


@cli.command()
def validate_tables():
    """Check the Super 8 and Super 12 rotation tables.

    Example:
        quadra validate-tables
    """
    from quadra.super_x import SUPER_X_SCHEDULES, total_fixtures, validate_schedule

    all_valid = True
    for cohort_size in sorted(SUPER_X_SCHEDULES):
        validation = validate_schedule(cohort_size)
        if validation.valid:
            click.echo(f"[SUCCESS] Super {cohort_size}: {cohort_size - 1} rounds, "
                       f"{total_fixtures(cohort_size)} fixtures")
        else:
            all_valid = False
            click.echo(f"[ERROR] Super {cohort_size} table is invalid:", err=True)
            for error in validation.errors:
                click.echo(f"   - {error}", err=True)

    if not all_valid:
        raise SystemExit(1)


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--csv", "csv_path", required=True, help="Path to entrants CSV file (8 or 12 entrants)")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
@click.option("--name", required=False, help="Stage display name")
@click.option("--out", required=False, help="Write fixtures CSV here")
def super_schedule(config: str, csv_path: str, stage_id: str, name: str, out: str):
    """Draw a Super-X stage and generate its rotation.

    Example:
        quadra super-schedule --csv data/super8.csv --stage s8-june --out fixtures.csv
    """
    import random

    from quadra.config_loader import ConfigError
    from quadra.exports import export_fixtures_csv
    from quadra.group_builder import validate_cohort_size
    from quadra.io_csv import CSVImportError, import_entrants_csv
    from quadra.models import Stage, StageFormat, StatRecord
    from quadra.storage import EntrantRepository, StageRepository, StatRecordRepository
    from quadra.super_x import build_super_x_fixtures, super_x_group_name
    from quadra.validation import ValidationError

    try:
        cfg = _load_cfg(config)
        entrants = import_entrants_csv(csv_path)
        _check_cohort(cfg, StageFormat.SUPER_X, len(entrants))
        validate_cohort_size(len(entrants), StageFormat.SUPER_X)

        # Draw order decides which entrant takes each table index
        entrant_ids = [e.id for e in entrants]
        random.Random(cfg["random_seed"]).shuffle(entrant_ids)
        fixtures = build_super_x_fixtures(entrant_ids)

        session = _open_session(cfg["database"])
        stage_repo = StageRepository(session)
        if stage_repo.get_by_id(stage_id):
            click.echo(f"[ERROR] Stage {stage_id} already exists", err=True)
            raise click.Abort()

        for entrant in entrants:
            EntrantRepository(session).upsert(entrant)
        stage_repo.create(Stage(
            id=stage_id,
            name=name or stage_id,
            format=StageFormat.SUPER_X,
            counts_toward_ranking=cfg["counts_toward_ranking"],
        ))
        # The whole cohort plays as one group
        group_name = super_x_group_name(len(entrants))
        stat_repo = StatRecordRepository(session)
        for entrant_id in entrant_ids:
            stat_repo.create(StatRecord(entrant_id=entrant_id, stage_id=stage_id, group_name=group_name))
            stat_repo.create(StatRecord(entrant_id=entrant_id, stage_id=stage_id))

        click.echo(f"[SUCCESS] Super {len(entrants)}: {len(fixtures)} fixtures")
        names = {e.id: e.name for e in entrants}
        current_round = None
        for fixture in fixtures:
            if fixture.round_number != current_round:
                current_round = fixture.round_number
                click.echo(f"\n  Round {current_round}")
            click.echo(
                f"    {' + '.join(names[i] for i in fixture.side_a)}  vs  "
                f"{' + '.join(names[i] for i in fixture.side_b)}"
            )

        if out:
            export_fixtures_csv(fixtures, out)
            click.echo(f"\n[SAVE] Fixtures written to {out}")

    except (ConfigError, CSVImportError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--csv", "csv_path", required=True, help="Path to entrants CSV file")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
@click.option("--name", required=False, help="Stage display name")
@click.option("--category", required=False, help="Only entrants of this category")
@click.option("--out", required=False, help="Write fixtures CSV here")
def build_groups(config: str, csv_path: str, stage_id: str, name: str, category: str, out: str):
    """Draw entrants into groups of four and generate group fixtures.

    Example:
        quadra build-groups --config config/stage.yaml --csv data/entrants.csv --stage june
    """
    from quadra.config_loader import ConfigError
    from quadra.exports import export_fixtures_csv
    from quadra.group_builder import create_groups
    from quadra.io_csv import CSVImportError, import_entrants_csv
    from quadra.models import Stage, StageFormat, StatRecord
    from quadra.storage import EntrantRepository, StageRepository, StatRecordRepository
    from quadra.validation import ValidationError

    try:
        cfg = _load_cfg(config)

        click.echo(f"[INFO] Reading CSV file: {csv_path}")
        entrants = import_entrants_csv(csv_path, category_filter=category)
        click.echo(f"[SUCCESS] Found {len(entrants)} entrants")
        _check_cohort(cfg, StageFormat.GROUPED, len(entrants))

        groups, fixtures = create_groups(
            entrants, cfg["seeds"], random_seed=cfg["random_seed"], group_size=cfg["group_size"]
        )
        click.echo(f"[SUCCESS] Created {len(groups)} groups with {len(fixtures)} fixtures")

        session = _open_session(cfg["database"])
        stage_repo = StageRepository(session)
        if stage_repo.get_by_id(stage_id):
            click.echo(f"[ERROR] Stage {stage_id} already exists", err=True)
            raise click.Abort()

        click.echo("[SAVE] Saving to database...")
        entrant_repo = EntrantRepository(session)
        for entrant in entrants:
            entrant_repo.upsert(entrant)
        stage_repo.create(Stage(
            id=stage_id,
            name=name or stage_id,
            format=StageFormat.GROUPED,
            counts_toward_ranking=cfg["counts_toward_ranking"],
        ))

        stat_repo = StatRecordRepository(session)
        for group in groups:
            for entrant_id in group.entrant_ids:
                stat_repo.create(StatRecord(entrant_id=entrant_id, stage_id=stage_id, group_name=group.name))
                stat_repo.create(StatRecord(entrant_id=entrant_id, stage_id=stage_id))

        names = {e.id: e.name for e in entrants}
        seeds = set(cfg["seeds"])
        click.echo("\n[STATS] Group Summary:")
        for group in groups:
            members = ", ".join(
                f"{names[i]}{' (seed)' if i in seeds else ''}" for i in group.entrant_ids
            )
            click.echo(f"  Group {group.name}: {members}")

        if out:
            export_fixtures_csv(fixtures, out)
            click.echo(f"\n[SAVE] Fixtures written to {out}")

        click.echo("\n[DONE] Groups created successfully!")

    except (ConfigError, CSVImportError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
@click.option("--results", required=True, help="Fixtures CSV with games_a/games_b filled in")
@click.option("--workers", default=0, help="Apply results on this many threads (0 = sequential)")
def record_results(config: str, stage_id: str, results: str, workers: int):
    """Apply match results to the stage ledger and refresh standings.

    Re-submitting a fixture with a new score replaces the old result.

    Example:
        quadra record-results --stage june --results fixtures.csv
    """
    from collections import Counter

    from quadra.bracket import consumed_rounds
    from quadra.config_loader import ConfigError
    from quadra.io_csv import CSVImportError, import_results_csv
    from quadra.ledger import StatsLedger, affected_groups
    from quadra.models import Scope
    from quadra.standings import rank_global, refresh_group_standings
    from quadra.storage import LedgerEntryRepository, StageRepository, StatRecordRepository
    from quadra.validation import ValidationError

    try:
        cfg = _load_cfg(config)
        match_results = import_results_csv(results)
        if not match_results:
            click.echo("[WARNING] No scored fixtures in file")
            return

        duplicates = [fid for fid, n in Counter(r.fixture.id for r in match_results).items() if n > 1]
        if duplicates:
            click.echo(f"[ERROR] Fixtures listed twice: {', '.join(duplicates)}", err=True)
            raise click.Abort()

        session = _open_session(cfg["database"])
        stage_repo = StageRepository(session)
        stat_repo = StatRecordRepository(session)
        journal = LedgerEntryRepository(session)

        if not stage_repo.get_by_id(stage_id):
            click.echo(f"[ERROR] Stage {stage_id} not found", err=True)
            raise click.Abort()

        # Confrontos of rounds already advanced from are frozen
        locked = [
            (stage_id, confronto.id)
            for rnd in consumed_rounds(stage_repo.get_bracket(stage_id))
            for confronto in rnd
            if not confronto.is_bye
        ]
        ledger = StatsLedger()
        ledger.load(
            stat_repo.get_all_by_stage(stage_id),
            applied=journal.load(stage_id),
            closed_group_phases=[stage_id] if stage_repo.is_group_phase_closed(stage_id) else [],
            locked_fixtures=locked,
        )

        by_scope: dict[Scope, list] = {}
        for result in match_results:
            by_scope.setdefault(Scope(stage_id, result.fixture.group_name), []).append(result)

        previous = {r.fixture.id: ledger.applied_deltas(r.fixture.id, stage_id) for r in match_results}
        applied = []
        for scope, scope_results in by_scope.items():
            applied.extend(ledger.apply_batch(scope_results, scope, max_workers=workers or None))

        # Persist what changed as increments, in a single transaction
        changed = 0
        for result in match_results:
            fixture_id = result.fixture.id
            current = ledger.applied_deltas(fixture_id, stage_id)
            if current == previous[fixture_id]:
                continue
            folded = [d.negated() for d in previous[fixture_id]] + list(current)
            stat_repo.apply_deltas(folded, commit=False)
            journal.save(stage_id, fixture_id, current, commit=False)
            changed += 1
        session.commit()

        groups = affected_groups(applied)
        ranked_groups = refresh_group_standings(ledger, stage_id, groups, cfg["qualify_count"])
        for ranked in ranked_groups.values():
            stat_repo.update_rankings(ranked)
        stat_repo.update_rankings(rank_global(ledger.snapshot(stage_id)))

        click.echo(f"[SUCCESS] {changed} results recorded, {len(match_results) - changed} unchanged")
        if groups:
            click.echo(f"[INFO] Standings refreshed for groups: {', '.join(sorted(groups))}")

    except (ConfigError, CSVImportError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
@click.option("--out", required=False, help="Write standings CSV here")
@click.option("--xlsx", required=False, help="Write standings Excel workbook here")
def standings(config: str, stage_id: str, out: str, xlsx: str):
    """Show group and stage standings.

    Example:
        quadra standings --stage june --out standings.csv
    """
    from pathlib import Path

    from quadra.config_loader import ConfigError
    from quadra.exports import export_standings_csv, generate_standings_excel
    from quadra.standings import rank_global, rank_group
    from quadra.storage import EntrantRepository, LedgerEntryRepository, StageRepository, StatRecordRepository

    try:
        cfg = _load_cfg(config)
        session = _open_session(cfg["database"])
        stage = StageRepository(session).get_by_id(stage_id)
        if not stage:
            click.echo(f"[ERROR] Stage {stage_id} not found", err=True)
            raise click.Abort()

        stat_repo = StatRecordRepository(session)
        names = EntrantRepository(session).names()
        journal = LedgerEntryRepository(session).load(stage_id)
        played: dict = {}
        for deltas in journal.values():
            if deltas:
                played[deltas[0].scope.group_name] = played.get(deltas[0].scope.group_name, 0) + 1

        tables = {}
        for group_name in stat_repo.group_names(stage_id):
            ranked = rank_group(stat_repo.get_by_stage(stage_id, group_name), cfg["qualify_count"])
            # Every pair of members partners once: n(n-1)/4 fixtures
            expected = len(ranked) * (len(ranked) - 1) // 4
            done = played.get(group_name, 0)
            status = "complete" if done >= expected else f"{done}/{expected} played"
            _echo_standings(f"Group {group_name} ({status})", ranked, names)
            tables[f"Group {group_name}"] = ranked

        overall = rank_global(stat_repo.get_by_stage(stage_id))
        _echo_standings(f"Stage {stage.name}", overall, names)
        tables["Stage"] = overall

        if out:
            export_standings_csv(tables, out, names)
            click.echo(f"\n[SAVE] Standings written to {out}")
        if xlsx:
            Path(xlsx).write_bytes(generate_standings_excel(tables, names))
            click.echo(f"[SAVE] Workbook written to {xlsx}")

    except ConfigError as e:
        click.echo(f"[ERROR] Configuration Error: {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
@click.option("--strategy", required=False,
              type=click.Choice(["strongest_paired", "cross_ranked", "random_draw"]),
              help="Team forming strategy (default from config)")
@click.option("--out", required=False, help="Write bracket CSV here")
@click.option("--fixtures-out", required=False, help="Write first-round fixtures CSV here")
def seed_bracket(config: str, stage_id: str, strategy: str, out: str, fixtures_out: str):
    """Pair group qualifiers into teams and seed the elimination bracket.

    Every group must be complete. Closes the group phase: group results can
    no longer be edited.

    Example:
        quadra seed-bracket --stage june --strategy cross_ranked
    """
    import random

    from quadra.bracket import BracketStrategy, build_bracket
    from quadra.config_loader import ConfigError
    from quadra.exports import export_bracket_csv, export_fixtures_csv
    from quadra.models import StageFormat
    from quadra.standings import rank_group, select_qualifiers
    from quadra.storage import EntrantRepository, StageRepository, StatRecordRepository
    from quadra.validation import ValidationError

    try:
        cfg = _load_cfg(config)
        session = _open_session(cfg["database"])
        stage_repo = StageRepository(session)
        stat_repo = StatRecordRepository(session)

        stage = stage_repo.get_by_id(stage_id)
        if not stage:
            click.echo(f"[ERROR] Stage {stage_id} not found", err=True)
            raise click.Abort()
        if stage.format == StageFormat.SUPER_X:
            click.echo(f"[ERROR] Stage {stage_id} is a Super-X stage and has no bracket", err=True)
            raise click.Abort()
        if stage_repo.get_bracket(stage_id):
            click.echo(f"[ERROR] Stage {stage_id} already has a bracket, cancel it first", err=True)
            raise click.Abort()

        group_names = stat_repo.group_names(stage_id)
        if not group_names:
            click.echo(f"[ERROR] Stage {stage_id} has no groups", err=True)
            raise click.Abort()

        ranked_groups = {
            g: rank_group(stat_repo.get_by_stage(stage_id, g), cfg["qualify_count"])
            for g in group_names
        }
        incomplete = [
            g for g, records in ranked_groups.items()
            if any(r.matches_played < len(records) - 1 for r in records)
        ]
        if incomplete:
            raise ValidationError(
                f"Groups with unplayed fixtures: {', '.join(incomplete)}", field="groups"
            )

        qualifiers = select_qualifiers(ranked_groups)
        chosen = BracketStrategy(strategy or cfg["bracket_strategy"])
        names = EntrantRepository(session).names()
        confrontos = build_bracket(
            qualifiers,
            chosen,
            shuffle=random.Random(cfg["random_seed"]).shuffle,
            names=names,
        )
        stage_repo.save_bracket(stage_id, [confrontos], commit=False)
        stage_repo.set_group_phase_closed(stage_id, True)

        click.echo(f"[SUCCESS] {len(qualifiers)} qualifiers, strategy {chosen.value}")
        for confronto in confrontos:
            click.echo(f"  {confronto}")

        if out:
            export_bracket_csv(confrontos, out)
            click.echo(f"\n[SAVE] Bracket written to {out}")
        if fixtures_out:
            export_fixtures_csv([c.to_fixture() for c in confrontos if not c.is_bye], fixtures_out)
            click.echo(f"[SAVE] First-round fixtures written to {fixtures_out}")

    except (ConfigError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
@click.option("--out", required=False, help="Write bracket CSV here")
@click.option("--fixtures-out", required=False, help="Write next-round fixtures CSV here")
def advance_bracket(config: str, stage_id: str, out: str, fixtures_out: str):
    """Close the current bracket round and build the next one from its winners.

    Winners come from the results recorded for the round. Once the next round
    exists those results can no longer be edited.

    Example:
        quadra advance-bracket --stage june --fixtures-out semis.csv
    """
    from quadra.bracket import advance_round, champion, record_confronto_result
    from quadra.config_loader import ConfigError
    from quadra.exports import export_bracket_csv, export_fixtures_csv
    from quadra.storage import LedgerEntryRepository, StageRepository
    from quadra.validation import ValidationError

    try:
        cfg = _load_cfg(config)
        session = _open_session(cfg["database"])
        stage_repo = StageRepository(session)

        if not stage_repo.get_by_id(stage_id):
            click.echo(f"[ERROR] Stage {stage_id} not found", err=True)
            raise click.Abort()
        rounds = stage_repo.get_bracket(stage_id)
        if not rounds:
            click.echo(f"[ERROR] Stage {stage_id} has no bracket", err=True)
            raise click.Abort()
        if champion(rounds[-1]):
            click.echo(f"[INFO] Bracket already decided: {champion(rounds[-1])}")
            return

        journal = LedgerEntryRepository(session).load(stage_id)
        current = []
        for confronto in rounds[-1]:
            deltas = journal.get((stage_id, confronto.id))
            if confronto.is_resolved or not deltas:
                current.append(confronto)
            else:
                # First delta belongs to side A: its games are the score of side A
                current.append(record_confronto_result(confronto, deltas[0].games_won, deltas[0].games_lost))

        next_round = advance_round(current)
        rounds[-1] = current
        if next_round:
            rounds.append(next_round)
        stage_repo.save_bracket(stage_id, rounds)

        winner = champion(current)
        if winner:
            click.echo(f"[DONE] Champion: {winner}")
        else:
            click.echo(f"[SUCCESS] {next_round[0].round_type.value} drawn")
            for confronto in next_round:
                click.echo(f"  {confronto}")

        if out:
            export_bracket_csv([c for rnd in rounds for c in rnd], out)
            click.echo(f"\n[SAVE] Bracket written to {out}")
        if fixtures_out and next_round:
            export_fixtures_csv([c.to_fixture() for c in next_round], fixtures_out)
            click.echo(f"[SAVE] Next-round fixtures written to {fixtures_out}")

    except (ConfigError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--stage", "stage_id", required=True, help="Stage identifier")
def cancel_bracket(config: str, stage_id: str):
    """Discard the bracket of a stage and reopen its group phase.

    Bracket results already recorded are reverted and qualification marks
    are cleared; group results stay as they are.

    Example:
        quadra cancel-bracket --stage june
    """
    from quadra.config_loader import ConfigError
    from quadra.standings import rank_global
    from quadra.storage import LedgerEntryRepository, StageRepository, StatRecordRepository
    from quadra.validation import ValidationError

    try:
        cfg = _load_cfg(config)
        session = _open_session(cfg["database"])
        stage_repo = StageRepository(session)
        stat_repo = StatRecordRepository(session)
        journal = LedgerEntryRepository(session)

        if not stage_repo.get_by_id(stage_id):
            click.echo(f"[ERROR] Stage {stage_id} not found", err=True)
            raise click.Abort()

        # Bracket fixtures are the ones accounted in the stage-global scope
        reverted = 0
        for (_, fixture_id), deltas in journal.load(stage_id).items():
            if deltas and not deltas[0].scope.is_group:
                stat_repo.apply_deltas([d.negated() for d in deltas], commit=False)
                journal.delete(stage_id, fixture_id, commit=False)
                reverted += 1
        stat_repo.clear_qualification(stage_id, commit=False)
        stage_repo.save_bracket(stage_id, None, commit=False)
        session.commit()

        stage_repo.set_group_phase_closed(stage_id, False)
        stat_repo.update_rankings(rank_global(stat_repo.get_by_stage(stage_id)))

        click.echo(f"[SUCCESS] Bracket of stage {stage_id} cancelled, {reverted} results reverted")
        click.echo(f"[INFO] Group phase of stage {stage_id} reopened")

    except (ConfigError, ValidationError) as e:
        click.echo(f"[ERROR] {e}", err=True)
        raise click.Abort()


@cli.command()
@click.option("--config", required=False, help="Path to config YAML file")
@click.option("--xlsx", required=False, help="Write ranking Excel workbook here")
def ranking(config: str, xlsx: str):
    """Show the ranking summed over every stage that counts toward it.

    Example:
        quadra ranking --xlsx ranking.xlsx
    """
    from pathlib import Path

    from quadra.config_loader import ConfigError
    from quadra.exports import generate_standings_excel
    from quadra.standings import aggregate_across_stages
    from quadra.storage import EntrantRepository, StageRepository, StatRecordRepository

    try:
        cfg = _load_cfg(config)
        session = _open_session(cfg["database"])
        stages = StageRepository(session).get_all()
        counting = [s for s in stages if s.counts_for_ranking]
        totals = aggregate_across_stages(StatRecordRepository(session).get_all(), stages)
        names = EntrantRepository(session).names()

        click.echo(f"[INFO] {len(counting)} of {len(stages)} stages count toward the ranking")
        _echo_standings("Ranking", totals, names)

        if xlsx:
            Path(xlsx).write_bytes(generate_standings_excel({}, names, ranking=totals))
            click.echo(f"\n[SAVE] Workbook written to {xlsx}")

    except ConfigError as e:
        click.echo(f"[ERROR] Configuration Error: {e}", err=True)
        raise click.Abort()


if __name__ == "__main__":
    cli()
