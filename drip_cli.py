import asyncio
import sys
from pathlib import Path

from drip.drip_runtime import TemplateRunner
from drip.drip_serialize import load_bindings

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def render_template_file(file_path: str, bindings_path: str = None):
    """Render a template file non-interactively and exit with appropriate status."""
    runner = TemplateRunner()
    try:
        source = Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    bindings = {}
    if bindings_path is not None:
        try:
            bindings = load_bindings(bindings_path)
        except FileNotFoundError:
            print(f"Error: file not found: {bindings_path}", file=sys.stderr)
            raise SystemExit(1)
        except ValueError as e:
            print(f"Error: {bindings_path}: {e}", file=sys.stderr)
            raise SystemExit(1)
    result = runner.handle_template(source, bindings)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    sys.stdout.write(result.output)

async def main():
    """Render a template file when provided, otherwise start the interactive prompt."""
    args = [a for a in sys.argv[1:] if not a.startswith("-")]
    if args:
        render_template_file(args[0], args[1] if len(args) > 1 else None)
        return

    print("Drip v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = TemplateRunner()

    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_template(line)
            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue
            print(result.output)

        except EOFError:
            print("\nExiting.")
            break

def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")

if __name__ == "__main__":
    run()
