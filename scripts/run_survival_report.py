from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from repeat_survival.censoring import censoring_summary, check_censoring, label_censoring
from repeat_survival.charts import gap_histogram, hazard_ratio_plot, save_survival_png, survival_plot
from repeat_survival.config import (
    COHORT_COVARIATES,
    COHORT_DURATION_COL,
    COHORT_EVENT_COL,
    COHORT_GROUP_COL,
    PURCHASES_FILE,
    RAW_DIR,
    REPORTS_DIR,
    configure_logging,
)
from repeat_survival.eda import cohort_overview, describe_series, purchase_overview
from repeat_survival.load_data import load_cohort, read_purchases
from repeat_survival.recurrent import gap_time_table
from repeat_survival.survival import fit_cox, fit_km, fit_recurrent, logrank, median_survival

logger = logging.getLogger("run_survival_report")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Kaplan-Meier, Cox and repeat-purchase survival report.")
    parser.add_argument("--purchases", type=Path, default=RAW_DIR / PURCHASES_FILE, help="CDNOW-style purchase log")
    parser.add_argument("--cohort", type=Path, default=None, help="cohort CSV (default: lifelines Rossi data)")
    parser.add_argument("--out", type=Path, default=REPORTS_DIR)
    parser.add_argument("--window-end", type=str, default=None, help="end of observation window (YYYY-MM-DD)")
    parser.add_argument("--penalizer", type=float, default=0.0)
    parser.add_argument("--log-level", type=str, default="INFO")
    return parser.parse_args(argv)


def cohort_report(cohort: pd.DataFrame, tables_dir: Path, figures_dir: Path, penalizer: float) -> None:
    cohort_overview(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL).to_csv(tables_dir / "cohort_overview.csv", index=False)

    # 1) Kaplan-Meier, overall and by group
    overall = fit_km(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL)
    overall.to_csv(tables_dir / "cohort_km_overall.csv", index=False)
    survival_plot(overall, title="Kaplan-Meier estimate (all subjects)", time_label=COHORT_DURATION_COL).write_html(
        figures_dir / "cohort_km_overall.html"
    )

    by_group = fit_km(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, group_col=COHORT_GROUP_COL)
    by_group.to_csv(tables_dir / f"cohort_km_by_{COHORT_GROUP_COL}.csv", index=False)
    survival_plot(by_group, title=f"Kaplan-Meier by {COHORT_GROUP_COL}", time_label=COHORT_DURATION_COL).write_html(
        figures_dir / f"cohort_km_by_{COHORT_GROUP_COL}.html"
    )
    save_survival_png(
        by_group,
        title=f"Kaplan-Meier by {COHORT_GROUP_COL}",
        xlabel=COHORT_DURATION_COL,
        outpath=figures_dir / f"cohort_km_by_{COHORT_GROUP_COL}.png",
    )
    median_survival(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, group_col=COHORT_GROUP_COL).to_csv(
        tables_dir / "cohort_median_survival.csv", index=False
    )

    # 2) Log-rank + Cox
    lr = logrank(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, COHORT_GROUP_COL)
    pd.DataFrame([lr.__dict__]).to_csv(tables_dir / "cohort_logrank.csv", index=False)
    print(f"Log-rank by {COHORT_GROUP_COL}: chi2={lr.test_statistic:.2f}, p={lr.p_value:.4f}")

    covariates = [c for c in COHORT_COVARIATES if c in cohort.columns]
    cox = fit_cox(cohort, COHORT_DURATION_COL, COHORT_EVENT_COL, covariates, penalizer=penalizer)
    cox.summary.to_csv(tables_dir / "cohort_cox_summary.csv")
    hazard_ratio_plot(cox.summary, title="Cox model: hazard ratios").write_html(figures_dir / "cohort_cox_hr.html")
    print(f"Cox concordance: {cox.concordance:.3f} (n={cox.n_observations}, events={cox.n_events})")


def purchase_report(purchases: pd.DataFrame, window_end, tables_dir: Path, figures_dir: Path, penalizer: float) -> None:
    overview = purchase_overview(purchases)
    pd.DataFrame([overview.__dict__]).to_csv(tables_dir / "purchase_overview.csv", index=False)

    # 3) Censoring labels + gap table
    labeled = label_censoring(purchases)
    check_censoring(labeled)
    labeled.to_csv(tables_dir / "purchases_labeled.csv", index=False)
    censoring_summary(labeled).to_csv(tables_dir / "purchases_per_user.csv", index=False)

    gaps = gap_time_table(labeled, window_end=window_end)
    describe_series(gaps.loc[gaps["event"] == 1, "gap"]).to_csv(tables_dir / "completed_gaps_describe.csv")
    gap_histogram(gaps).write_html(figures_dir / "gap_histogram.html")

    # 4) Recurrent-event fit
    fit = fit_recurrent(gaps, penalizer=penalizer)
    fit.curves.to_csv(tables_dir / "repeat_km_by_episode.csv", index=False)
    fit.episodes.to_csv(tables_dir / "repeat_episode_summary.csv", index=False)
    fit.cox.summary.to_csv(tables_dir / "repeat_cox_summary.csv")

    survival_plot(
        fit.curves, title="Time to next purchase by purchase number", time_label="days since purchase"
    ).write_html(figures_dir / "repeat_km_by_episode.html")
    save_survival_png(
        fit.curves,
        title="Time to next purchase by purchase number",
        xlabel="days since purchase",
        outpath=figures_dir / "repeat_km_by_episode.png",
    )
    hazard_ratio_plot(fit.cox.summary, title="Repeat purchase: hazard ratios").write_html(
        figures_dir / "repeat_cox_hr.html"
    )
    print(f"Repeat-purchase Cox concordance: {fit.cox.concordance:.3f} (gaps={fit.cox.n_observations})")


def main(argv=None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    tables_dir = args.out / "tables"
    figures_dir = args.out / "figures"
    tables_dir.mkdir(parents=True, exist_ok=True)
    figures_dir.mkdir(parents=True, exist_ok=True)

    logger.info("cohort analysis")
    cohort_report(load_cohort(args.cohort), tables_dir, figures_dir, args.penalizer)

    if args.purchases.exists():
        logger.info("repeat-purchase analysis on %s", args.purchases)
        purchase_report(read_purchases(args.purchases), args.window_end, tables_dir, figures_dir, args.penalizer)
    else:
        logger.warning("purchase file %s not found, skipping repeat-purchase analysis", args.purchases)

    print("✅ Survival report written to:")
    print(f"  - {tables_dir.resolve()}")
    print(f"  - {figures_dir.resolve()}")


if __name__ == "__main__":
    main()
