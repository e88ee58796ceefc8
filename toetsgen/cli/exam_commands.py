"""
Exam generation, listing, export and topic suggestion CLI commands.
"""

from toetsgen.cli import get_db_session
from toetsgen.database import Exam, User
from toetsgen.exam_config import DEFAULT_LANGUAGE_LEVEL, LANGUAGE_LEVELS, ConfigurationError, assemble_configuration
from toetsgen.exam_export import download_name, export_docx, export_text
from toetsgen.exam_generator import GenerationError, generate_exam
from toetsgen.exam_models import GeneratedExam
from toetsgen.llm_provider import ProviderError
from toetsgen.presentation import VIEW_IDS
from toetsgen.question_types import QuestionTypeAllocation
from toetsgen.taxonomy import DEFAULT_SCHEME, SCHEMES, TaxonomyDistribution
from toetsgen.topic_suggester import SUGGESTION_FAILED_TEXT, suggest_topics


def _parse_pairs(raw):
    """Parse "A=50,B=50" into [("A", 50), ("B", 50)].

    Raises:
        ValueError: on a pair without "=" or a non-integer percentage.
    """
    pairs = []
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if "=" not in chunk:
            raise ValueError(f"Expected LABEL=PERCENT, got '{chunk}'")
        label, percent = chunk.rsplit("=", 1)
        pairs.append((label.strip(), int(percent)))
    return pairs


def register_exam_commands(subparsers):
    """Register exam-related subcommands."""

    # generate
    p = subparsers.add_parser("generate", help="Generate an exam and store it.")
    p.add_argument("--taxonomy", choices=list(SCHEMES), default=DEFAULT_SCHEME, help="Taxonomy scheme.")
    p.add_argument("--subject", required=True, help="Subject, e.g. Biologie.")
    p.add_argument("--level", required=True, help="Level, e.g. 'Havo 4'.")
    p.add_argument("--topics", required=True, help="Topics to cover.")
    p.add_argument("--goals", dest="learning_goals", default="", help="Learning goals.")
    p.add_argument(
        "--distribution",
        help="Taxonomy weights, e.g. 'R=25,T1=40,T2=25,I=10' (default: scheme defaults).",
    )
    p.add_argument(
        "--types",
        dest="question_types",
        help="Question types, e.g. 'Meerkeuze=60,Open vraag / korte antwoord=40'.",
    )
    p.add_argument("--duration", type=int, default=60, help="Duration in minutes.")
    p.add_argument("--count", dest="question_count", type=int, default=15, help="Number of questions.")
    p.add_argument(
        "--language-level", choices=LANGUAGE_LEVELS, default=DEFAULT_LANGUAGE_LEVEL, help="Language level."
    )
    p.add_argument("--extra", dest="extra_requirements", default="", help="Extra requirements.")
    p.add_argument("--user", help="Store the exam for this account's e-mail address.")

    # list-exams
    subparsers.add_parser("list-exams", help="List stored exams.")

    # export-exam
    p = subparsers.add_parser("export-exam", help="Export a stored exam to file.")
    p.add_argument("exam_id", type=int, help="Exam ID to export.")
    p.add_argument("--format", dest="fmt", default="txt", choices=["txt", "docx"], help="Export format.")
    p.add_argument("--view", choices=VIEW_IDS, help="Only export one view (txt only).")
    p.add_argument("--output", type=str, help="Output file path.")

    # suggest-topics
    p = subparsers.add_parser("suggest-topics", help="Suggest exam topics with web search.")
    p.add_argument("--subject", required=True, help="Subject.")
    p.add_argument("--level", required=True, help="Level.")


def handle_generate(config, args):
    """Assemble a configuration from arguments, generate and store the exam."""
    try:
        distribution = TaxonomyDistribution(args.taxonomy)
        for label, percent in _parse_pairs(args.distribution):
            distribution.set_value(label, percent)
        allocation = QuestionTypeAllocation(_parse_pairs(args.question_types) if args.question_types else None)
    except (KeyError, ValueError) as e:
        print(f"Error: {e}")
        return

    try:
        exam_config = assemble_configuration(
            distribution,
            allocation,
            subject=args.subject,
            level=args.level,
            topics=args.topics,
            learning_goals=args.learning_goals,
            duration=args.duration,
            question_count=args.question_count,
            language_level=args.language_level,
            extra_requirements=args.extra_requirements,
        )
    except ConfigurationError as ce:
        for message in ce.errors:
            print(f"  [FAIL] {message}")
        return

    print(f"Generating {args.taxonomy} exam: {args.subject} ({args.level})...")
    try:
        exam = generate_exam(config, exam_config)
    except (GenerationError, ProviderError) as e:
        print(f"Error: {e.user_message}")
        return

    engine, session = get_db_session(config)
    try:
        user_id = None
        if args.user:
            user = session.query(User).filter_by(email=args.user.strip().lower()).first()
            if not user:
                print(f"Error: No account found for {args.user}.")
                return
            user_id = user.id

        configuration = exam_config.model_dump()
        configuration["question_type_entries"] = [list(entry) for entry in allocation.entries]
        record = Exam(
            user_id=user_id,
            title=exam.title,
            taxonomy=exam.taxonomy,
            configuration=configuration,
            content=exam.model_dump(),
        )
        session.add(record)
        session.commit()
        print(f"[OK] Generated exam {record.id}: {exam.title} ({len(exam.questions)} questions)")
    finally:
        session.close()


def handle_list_exams(config, args):
    """List all stored exams with ID, title, taxonomy and date."""
    engine, session = get_db_session(config)
    try:
        exams = session.query(Exam).order_by(Exam.id).all()
        if not exams:
            print("No exams found.")
            return

        print(f"\n{'ID':>5}  {'Title':<40} {'Scheme':<7} {'Created'}")
        print(f"{'---':>5}  {'---':<40} {'---':<7} {'---'}")
        for exam in exams:
            title = (exam.title or "Naamloos")[:38]
            created = exam.created_at.strftime("%Y-%m-%d %H:%M") if exam.created_at else ""
            print(f"{exam.id:>5}  {title:<40} {exam.taxonomy or '':<7} {created}")

        print(f"\nTotal: {len(exams)} exams")
    finally:
        session.close()


def handle_export_exam(config, args):
    """Export a stored exam to a text or Word file."""
    engine, session = get_db_session(config)
    try:
        record = session.query(Exam).filter_by(id=args.exam_id).first()
        if not record:
            print(f"Error: Exam with ID {args.exam_id} not found.")
            return
        exam = GeneratedExam.model_validate(record.content)

        view = getattr(args, "view", None)
        output = args.output or download_name(record.title, args.fmt, view if args.fmt == "txt" else None)

        if args.fmt == "docx":
            with open(output, "wb") as f:
                f.write(export_docx(exam).getvalue())
        else:
            with open(output, "w", encoding="utf-8") as f:
                f.write(export_text(exam, view=view))
        print(f"[OK] Exported exam {record.id} to {output}")
    finally:
        session.close()


def handle_suggest_topics(config, args):
    """Print suggested topics and their sources."""
    suggestion = suggest_topics(config, args.subject, args.level)
    print(f"\n{suggestion.topics}")
    if suggestion.topics == SUGGESTION_FAILED_TEXT:
        return
    if suggestion.sources:
        print("\nBronnen:")
        for source in suggestion.sources:
            print(f"  - {source['title']}: {source['uri']}")
