"""Terminal utility for colored output of plans, results and readbacks."""


class ColorPrinter:
    """
    Utility for printing colored text to the terminal using ANSI escape codes.
    """

    # ANSI Color Codes
    HEADER = "\033[95m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    RESET = "\033[0m"
    BOLD = "\033[1m"

    @staticmethod
    def info(message):
        """Print an informational message in blue."""
        print(f"{ColorPrinter.BLUE}[INFO] {message}{ColorPrinter.RESET}")

    @staticmethod
    def success(message):
        """Print a success message in green."""
        print(f"{ColorPrinter.GREEN}[SUCCESS] {message}{ColorPrinter.RESET}")

    @staticmethod
    def warning(message):
        """Print a warning message in yellow."""
        print(f"{ColorPrinter.YELLOW}[WARNING] {message}{ColorPrinter.RESET}")

    @staticmethod
    def error(message):
        """Print an error message in red."""
        print(f"{ColorPrinter.RED}[ERROR] {message}{ColorPrinter.RESET}")

    @staticmethod
    def header(message):
        """Print a bold header message in magenta."""
        print(f"\n{ColorPrinter.HEADER}{ColorPrinter.BOLD}{'='*60}")
        print(f"   {message.upper()}")
        print(f"{'='*60}{ColorPrinter.RESET}\n")

    @staticmethod
    def cyan(message):
        """Print a message in cyan."""
        print(f"{ColorPrinter.CYAN}{message}{ColorPrinter.RESET}")

    @staticmethod
    def plan(plan):
        """Print each step of a TransitionPlan with its post-send delay."""
        C, Y, R = ColorPrinter.CYAN, ColorPrinter.YELLOW, ColorPrinter.RESET
        print(f"{ColorPrinter.BOLD}{plan.operation}{R}  ({len(plan)} command(s), {plan.total_delay * 1000:.0f} ms)")
        for index, step in enumerate(plan.steps):
            wait = f"  {Y}+{step.delay * 1000:.0f} ms{R}" if step.delay else ""
            print(f"  {index:02d}  {C}{step.command}{R}{wait}")

    @staticmethod
    def result(result):
        """Print the outcome of a SessionResult."""
        if result.success:
            ColorPrinter.success(f"{result.operation}: {len(result.sent_commands)} command(s) sent")
        elif result.cancelled:
            ColorPrinter.warning(f"{result.operation}: cancelled after {len(result.sent_commands)} command(s)")
        else:
            failure = result.failure
            ColorPrinter.error(
                f"{result.operation}: step {failure.step} ({failure.command}) failed - {failure.reason}"
            )

    @staticmethod
    def settings(title, values, failures=()):
        """Print a name -> value table, marking stale fields in yellow."""
        stale = {f.command for f in failures}
        print(f"{ColorPrinter.BOLD}{title}{ColorPrinter.RESET}")
        for name, value in values.items():
            print(f"  {ColorPrinter.CYAN}{name:<10}{ColorPrinter.RESET} {value}")
        for command in sorted(stale):
            ColorPrinter.warning(f"{command} did not answer; previous value kept")
