
import argparse, pathlib
from typing import List, Optional

from homework_evaluator.config import Config
from homework_evaluator.llm.base import EvaluationClient
from homework_evaluator.llm.constants import LLMModels
from homework_evaluator.pipeline import run_evaluation
from homework_evaluator.services.google_drive import authenticate, get_folder_documents
from homework_evaluator.settings import load_llm_settings, load_oauth_settings

USAGE = "Usage: homework-evaluator -f <GoogleFolderName> -r <rubricFile>"
DESCRIPTION = ("Evaluates Google Docs documents in a Google Drive folder using AI. "
               "The evaluation criteria must be provided in the rubric file.")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(add_help=False, usage=USAGE, description=DESCRIPTION)
    ap.add_argument("-f", dest="folder", type=str, nargs="?", help="Name of the Google Drive folder to evaluate.")
    ap.add_argument("-r", dest="rubric", type=str, nargs="?", help="Path to the rubric JSON file.")
    ap.add_argument("-h", dest="help", action="store_true", help="Show this message and exit.")
    ap.add_argument("--model", type=str, default=LLMModels.GPT_4O_MINI.value)
    ap.add_argument("--mock", action="store_true", help="Read the completion from <data_dir>/mock_gpt_response.json instead of calling the API.")
    ap.add_argument("--data_dir", type=str, default="data", help="Directory holding the mock response (default: data).")
    ap.add_argument("--output_dir", type=str, help="Directory for <folder>.json (default: working directory).")
    return ap


def print_usage() -> None:
    print(USAGE)
    print(DESCRIPTION)


def main(argv: Optional[List[str]] = None):
    ap = build_parser()
    args, _unknown = ap.parse_known_args(argv)

    if args.help or not (args.folder or "").strip() or not (args.rubric or "").strip():
        print_usage()
        return

    cfg = Config(
        model_name=args.model,
        data_dir=pathlib.Path(args.data_dir),
        mock=args.mock,
        output_dir=pathlib.Path(args.output_dir) if args.output_dir else None,
    )

    try:
        llm_settings = load_llm_settings(project_file=cfg.project_file)
        client = EvaluationClient(llm_settings, model_name=cfg.model_name, data_dir=cfg.data_dir,
                                  mock=cfg.mock, mock_response_file=cfg.mock_response_file)
        rubric_json = pathlib.Path(args.rubric).read_text(encoding="utf-8")

        oauth_settings = load_oauth_settings(project_file=cfg.project_file,
                                             public_settings_file=cfg.public_settings_file)
        session = authenticate(oauth_settings)
        print("Google services initialized.")

        docs = get_folder_documents(session, args.folder)
        print(f"Found {len(docs)} documents in folder '{args.folder}':")

        report = run_evaluation(docs, client, rubric_json, args.folder)
        out_path = report.write(cfg.output_dir)
        print(f"Saved JSON report: {out_path}")
    except Exception as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    main()
