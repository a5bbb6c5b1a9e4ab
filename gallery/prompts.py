"""Small input() helpers shared by the interactive scripts."""

from gallery.library import normalize_status
from gallery.tmdb import release_date, result_title


TOP_RESULTS = 5


def ask(question: str, required: bool = False) -> str:
    """Prompt until a non-empty answer is given (when required)."""
    while True:
        answer = input(question).strip()
        if answer or not required:
            return answer
        print("This field cannot be empty, please try again.")


def ask_status(question: str = "Status (1=watching, 2=watched, 3=wishlist): ",
               default: str | None = None) -> str:
    while True:
        answer = ask(question, required=default is None)
        if not answer and default:
            return default
        status = normalize_status(answer)
        if status:
            return status
        print("Unrecognised status, enter 1/2/3 or a status name.")


def summarise_result(result: dict, overview_chars: int = 60) -> str:
    """One search result as a menu line."""
    title = result_title(result) or "(untitled)"
    year = release_date(result)[:4] or "????"
    overview = " ".join((result.get("overview") or "")[:overview_chars].split())
    line = f"{title} ({year}) - TMDB ID {result.get('id')}"
    if overview:
        line += f"\n    {overview}…"
    return line


def choose_result(results: list[dict], allow_skip: bool = False):
    """Let the user pick one of the top results.

    Returns the chosen result, None to search again, or "skip".
    """
    top = results[:TOP_RESULTS]
    print("\nSearch results:")
    for index, result in enumerate(top, start=1):
        print(f"{index}. {summarise_result(result)}")
    print("0. Search again" + ("   s. Skip" if allow_skip else ""))

    while True:
        choice = ask("Choose a number: ", required=True)
        if allow_skip and choice.lower() == "s":
            return "skip"
        if choice.isdigit():
            idx = int(choice)
            if idx == 0:
                return None
            if 1 <= idx <= len(top):
                return top[idx - 1]
        print("Invalid choice, please try again.")
