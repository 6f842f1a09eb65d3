""" Run one full generation session from the command line.

Analyses a resume against a job description, confirms the extracted
profile, generates the resume and every staggered artifact, and writes
each artifact to the output directory.
"""

from __future__ import annotations

from argparse import ArgumentParser
import mimetypes
from pathlib import Path

import anyio

from core.llm_client import Attachment
from core.llm_factory import get_request_executor
from core.models import SUPPORTED_LANGUAGES, ContentType, GenerationOptions
from core.obs import JsonRepoLogger, JsonStdoutLogger
from generators.analysis import ResumeAnalyzer
from generators.orchestrator import GenerationOrchestrator
from generators.score import ScoreEstimator
from generators.session import OrchestratorContext


_SUFFIX = {ContentType.MARKET_INSIGHTS: ".json"}


async def run(args) -> OrchestratorContext:
    if args.log_file:
        logger = JsonStdoutLogger(service="scripts", env="dev", log_path=args.log_file)
    else:
        logger = JsonRepoLogger(service="scripts", env="dev", filename="session.log")
    logger = logger.bind(resume=args.resume.name)

    mime_type = mimetypes.guess_type(args.resume.name)[0] or "application/pdf"
    attachment = Attachment(data=args.resume.read_bytes(), mime_type=mime_type, name=args.resume.name)
    jd_text = args.jd.read_text(encoding="utf-8") if args.jd else ""

    executor = get_request_executor(logger=logger)
    analysis = await ResumeAnalyzer(executor).analyze(attachment, jd_text)
    print(f"ATS score: {analysis.ats_score}  relevance: {analysis.relevance_score}")
    print(f"Role fit: {analysis.role_fit_analysis}")

    ctx = OrchestratorContext(
        analysis,
        jd_text,
        attachment,
        options=GenerationOptions(language=args.language, tailor_experience=args.tailor),
        paid=True,
    )
    ctx.confirm_profile()
    ctx.subscribe(lambda snap: print(f"  {snap.content_type.value}: {snap.status.value}"))

    orchestrator = GenerationOrchestrator(executor=executor, score_estimator=ScoreEstimator(executor))
    await orchestrator.generate_all(ctx)
    await ctx.wait_idle()
    return ctx


def main():
    p = ArgumentParser(description="Analyse a resume and generate every catalog artifact")
    p.add_argument("--resume", type=Path, required=True, help="Path to the resume document (PDF, image or text)")
    p.add_argument("--jd", type=Path, help="Path to the job description text (omit for a general ATS check)")
    p.add_argument("--language", default="English", choices=SUPPORTED_LANGUAGES)
    p.add_argument("--tailor", action="store_true", help="Aggressively tailor experience bullets to the JD")
    p.add_argument("--log-file", type=Path, help="Optional structured log file path")
    p.add_argument("--out", type=Path, default=Path("out/session"), help="Directory for generated artifacts")
    args = p.parse_args()

    ctx = anyio.run(run, args)

    args.out.mkdir(parents=True, exist_ok=True)
    for content_type, snap in ctx.snapshot().items():
        artifact = ctx.artifact(content_type)
        if artifact is None:
            print(f"{content_type.value}: {snap.status.value} ({snap.last_error or 'no output'})")
            continue
        path = args.out / f"{content_type.value}{_SUFFIX.get(content_type, '.md')}"
        path.write_text(artifact, encoding="utf-8")
        print(f"{content_type.value}: wrote {path}")
    if ctx.optimized_score is not None:
        print(f"Optimized resume score: {ctx.optimized_score}")


if __name__ == "__main__":
    main()
