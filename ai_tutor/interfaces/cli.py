"""
CLI Interface - Interactive command-line tutor.

This module provides a terminal interface for the AI Tutor. It supports:
- Free-form questions answered from your uploaded PDFs
- Uploading PDFs (/upload)
- Quiz generation (/quiz)
- Raw semantic search (/search)
- Document management (/docs, /delete)
- Help and commands (/help)

It also starts the HTTP API (serve).

Run with:
    python -m ai_tutor            # interactive chat
    python -m ai_tutor serve      # HTTP API
"""

from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from ai_tutor.config import DEFAULT_QUIZ_QUESTIONS, HISTORY_TURNS, HOST, PORT
from ai_tutor.errors import TutorError
from ai_tutor.rag.pipeline import TutorPipeline, build_pipeline

# Rich console for beautiful output
console = Console()


def print_welcome():
    """Print welcome message and instructions."""
    welcome_text = """
[bold blue]Welcome to the AI Tutor Agent![/bold blue]

Upload your study materials and I'll help you learn from them:

• [cyan]Ask questions[/cyan] - answers are grounded in your PDFs
• [cyan]Generate quizzes[/cyan] - multiple-choice and short-answer
• [cyan]Search[/cyan] - find the passages that match a query

[dim]Type /help for all commands[/dim]
"""
    console.print(Panel(welcome_text, border_style="blue"))


def print_help():
    """Print help message with available commands."""
    table = Table(title="Available Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="dim")

    commands = [
        ("(any question)", "Ask about your materials", "What is an array?"),
        ("/upload <path>", "Upload a PDF", "/upload notes/dsa.pdf"),
        ("/quiz <topic> [n]", "Generate n quiz questions", "/quiz arrays 5"),
        ("/search <query>", "Show matching passages", "/search binary search"),
        ("/docs", "List uploaded documents", "/docs"),
        ("/delete <doc_id>", "Delete a document", "/delete 3f2a..."),
        ("/stats", "Show store statistics", "/stats"),
        ("/clear", "Clear the screen", "/clear"),
        ("/help", "Show this help message", "/help"),
        ("/exit", "Exit the tutor", "/exit"),
    ]

    for cmd, desc, example in commands:
        table.add_row(cmd, desc, example)

    console.print(table)


def parse_command(user_input: str) -> tuple[str, list[str]]:
    """
    Parse user input into command and arguments.

    Returns:
        Tuple of (command, arguments)
        For regular questions, command is 'ask'
    """
    user_input = user_input.strip()

    if not user_input:
        return ("empty", [])

    if user_input.startswith("/"):
        parts = user_input[1:].split(maxsplit=1)
        command = parts[0].lower()
        args = parts[1].split() if len(parts) > 1 else []
        return (command, args)

    return ("ask", [user_input])


def handle_ask(tutor: TutorPipeline, question: str, history: list[dict]):
    """Answer a question and remember the turn."""
    with console.status("[bold green]Thinking...", spinner="dots"):
        result = tutor.chat(question, history=history)

    console.print("\n[bold green]🎓 Tutor:[/bold green]")
    console.print(Markdown(result["reply"]))

    if result["usedRAG"]:
        sources = ", ".join(sorted({s["filename"] or "unknown" for s in result["sources"]}))
        console.print(f"[dim]Sources: {sources}[/dim]")

    history.append({"role": "user", "content": question})
    history.append({"role": "assistant", "content": result["reply"]})
    del history[:-HISTORY_TURNS]


def handle_upload(tutor: TutorPipeline, args: list[str]):
    """Handle /upload command."""
    if not args:
        console.print("[yellow]Usage: /upload <path_to_pdf>[/yellow]")
        return

    path = Path(" ".join(args)).expanduser()
    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        return

    with console.status(f"[bold green]Processing {path.name}...", spinner="dots"):
        result = tutor.upload(path.read_bytes(), path.name)

    console.print(
        f"[green]✓ {path.name}: {result.chunk_count} chunks from "
        f"{result.page_count} pages[/green] [dim](id {result.doc_id})[/dim]"
    )


def handle_quiz(tutor: TutorPipeline, args: list[str]):
    """Handle /quiz command."""
    if not args:
        console.print("[yellow]Usage: /quiz <topic> [number_of_questions][/yellow]")
        console.print("[dim]Example: /quiz arrays 5[/dim]")
        return

    num_questions = DEFAULT_QUIZ_QUESTIONS
    if len(args) > 1 and args[-1].isdigit():
        num_questions = int(args[-1])
        args = args[:-1]
    topic = " ".join(args)

    console.print(f"\n[cyan]Generating {num_questions} quiz questions about {topic}...[/cyan]")

    with console.status("[bold green]Thinking...", spinner="dots"):
        quiz = tutor.generate_quiz(topic, num_questions=num_questions)

    console.print("\n[bold green]📝 Quiz:[/bold green]")
    for question in quiz["questions"]:
        console.print(f"\n[bold]{question['id']}. {question['question']}[/bold]")
        for option in question.get("options", []):
            console.print(f"   • {option}")
        console.print(f"   [dim]Answer: {question['answer']}[/dim]")


def handle_search(tutor: TutorPipeline, args: list[str]):
    """Handle /search command."""
    if not args:
        console.print("[yellow]Usage: /search <query>[/yellow]")
        return

    results = tutor.search(" ".join(args))["results"]
    if not results:
        console.print("[yellow]No matching passages. Upload a PDF first.[/yellow]")
        return

    for i, result in enumerate(results, 1):
        meta = result["metadata"]
        console.print(
            f"\n[bold cyan][{i}][/bold cyan] [dim]{meta.get('filename')} "
            f"p.{meta.get('page')} (score {result['similarity']:.3f})[/dim]"
        )
        console.print(result["text"][:300])


def handle_docs(tutor: TutorPipeline):
    """Handle /docs command."""
    documents = tutor.list_documents()["documents"]
    if not documents:
        console.print("[yellow]No documents uploaded yet. Use /upload <path>.[/yellow]")
        return

    table = Table(title="Documents", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Filename", style="white")
    table.add_column("Pages", style="green")
    table.add_column("Chunks", style="green")

    for doc in documents:
        table.add_row(doc["id"], doc["filename"], str(doc["numPages"]), str(doc["numChunks"]))

    console.print(table)


def handle_delete(tutor: TutorPipeline, args: list[str]):
    """Handle /delete command."""
    if not args:
        console.print("[yellow]Usage: /delete <doc_id>[/yellow]")
        return

    tutor.delete_document(args[0])
    console.print(f"[green]✓ Deleted {args[0]}[/green]")


def handle_stats(tutor: TutorPipeline):
    """Handle /stats command."""
    health = tutor.health()
    stats = health["vectorStore"]

    table = Table(title="Tutor Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="white")
    table.add_column("Value", style="green")

    table.add_row("Documents", str(stats["totalDocuments"]))
    table.add_row("Total Chunks", str(stats["totalVectors"]))
    table.add_row("Generation", health["ai"]["generation"])
    table.add_row("Embeddings", health["ai"]["embeddings"])
    table.add_row("Mirror", health["mirror"])

    console.print(table)


def chat(tutor: TutorPipeline | None = None):
    """Main CLI loop."""
    print_welcome()

    tutor = tutor or build_pipeline()
    history: list[dict] = []

    console.print()

    # Main loop
    while True:
        try:
            user_input = Prompt.ask("[bold cyan]You[/bold cyan]")
            command, args = parse_command(user_input)

            if command == "empty":
                continue

            elif command == "exit" or command == "quit":
                console.print("\n[bold blue]Goodbye! Keep learning! 📚[/bold blue]")
                break

            elif command == "help":
                print_help()

            elif command == "clear":
                console.clear()
                print_welcome()

            elif command == "upload":
                handle_upload(tutor, args)

            elif command == "quiz":
                handle_quiz(tutor, args)

            elif command == "search":
                handle_search(tutor, args)

            elif command == "docs":
                handle_docs(tutor)

            elif command == "delete":
                handle_delete(tutor, args)

            elif command == "stats":
                handle_stats(tutor)

            elif command == "ask":
                handle_ask(tutor, args[0], history)

            else:
                # Unknown command - treat as question
                full_input = f"/{command} {' '.join(args)}".strip()
                console.print("[yellow]Unknown command. Treating as question...[/yellow]")
                handle_ask(tutor, full_input, history)

            console.print()  # Add spacing

        except KeyboardInterrupt:
            console.print("\n\n[bold blue]Goodbye! Keep learning! 📚[/bold blue]")
            break
        except TutorError as e:
            console.print(f"[red]Error: {e.message}[/red]")
            console.print("[dim]Type /help for available commands[/dim]")

    tutor.close()


def serve(host: str = HOST, port: int = PORT):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from ai_tutor.interfaces.web_app import create_app

    console.print(Panel(
        f"[bold blue]🚀 AI Tutor Agent[/bold blue]\n"
        f"Server running on http://{host}:{port}",
        border_style="blue",
    ))
    uvicorn.run(create_app(), host=host, port=port)
