import unittest
from io import StringIO
from unittest.mock import MagicMock, patch

from aicmd.ai.assistants import do
from aicmd.ai.assistants.do import InteractionChoice, parse_choice
from aicmd.errors import EmptyResultError
from aicmd.platforms import UnixPlatform, WindowsPlatform


class TestBuildGeneratePrompt(unittest.TestCase):
    """Tests for the command-generation prompt."""

    def setUp(self):
        self.platform = UnixPlatform("macOS", {"SHELL": "/bin/zsh"})

    def test_system_prompt_names_os_and_shell(self):
        system_prompt, _ = do.build_generate_prompt("list files", platform=self.platform)
        self.assertIn("macOS", system_prompt)
        self.assertIn("zsh", system_prompt)
        self.assertIn("Output only the command itself", system_prompt)

    def test_user_prompt_without_stdin(self):
        _, user_prompt = do.build_generate_prompt("list files", platform=self.platform)
        self.assertEqual(user_prompt, "Description: list files")

    def test_stdin_content_only_changes_user_prompt(self):
        plain = do.build_generate_prompt("count lines", platform=self.platform)
        piped = do.build_generate_prompt("count lines", "a\nb\n", platform=self.platform)

        self.assertEqual(plain[0], piped[0])
        self.assertNotEqual(plain[1], piped[1])
        self.assertIn("Input content:\na\nb\n", piped[1])
        self.assertTrue(piped[1].startswith("Description: count lines"))

    def test_prompt_is_deterministic(self):
        first = do.build_generate_prompt("count lines", "data", platform=self.platform)
        second = do.build_generate_prompt("count lines", "data", platform=self.platform)
        self.assertEqual(first, second)


class TestParseChoice(unittest.TestCase):

    def test_execute(self):
        for answer in ("", "   ", "e", "E", "exec", "EXEC", " e \n"):
            with self.subTest(answer=answer):
                self.assertIs(parse_choice(answer), InteractionChoice.EXECUTE)

    def test_explain(self):
        for answer in ("d", "D"):
            with self.subTest(answer=answer):
                self.assertIs(parse_choice(answer), InteractionChoice.EXPLAIN)

    def test_quit(self):
        for answer in ("q", "Q", "quit", "QUIT"):
            with self.subTest(answer=answer):
                self.assertIs(parse_choice(answer), InteractionChoice.QUIT)

    def test_invalid(self):
        for answer in ("x", "Exec", "yes", "dd", "explain"):
            with self.subTest(answer=answer):
                self.assertIs(parse_choice(answer), InteractionChoice.INVALID)


@patch("sys.stdout", new_callable=StringIO)
@patch("aicmd.ai.assistants.do.subprocess.run")
class TestDoAssistant(unittest.TestCase):
    """Tests for the generate / confirm / execute flow."""

    def setUp(self):
        self.client = MagicMock()
        self.client.call_buffered.return_value = "ls -la\n"
        self.platform = UnixPlatform("Linux", {"SHELL": "/bin/bash"}, stdin=StringIO())

    def test_generates_command_with_prompt_pair(self, mock_run, mock_stdout):
        mock_run.return_value.returncode = 0
        with patch("builtins.input", return_value="e"):
            do.do(self.client, "list all files", platform=self.platform)

        expected = do.build_generate_prompt("list all files", None, self.platform)
        self.client.call_buffered.assert_called_once_with(*expected)
        self.assertIn("  ls -la", mock_stdout.getvalue())

    def test_empty_input_executes(self, mock_run, mock_stdout):
        mock_run.return_value.returncode = 0
        with patch("builtins.input", return_value="") as mock_input:
            do.do(self.client, "list all files", platform=self.platform)

        mock_input.assert_called_once_with(do.CHOICE_PROMPT)
        mock_run.assert_called_once_with(["sh", "-c", "ls -la"])

    def test_windows_runs_through_cmd(self, mock_run, mock_stdout):
        mock_run.return_value.returncode = 0
        platform = WindowsPlatform("Windows", {}, stdin=StringIO())
        with patch("builtins.input", return_value="exec"):
            do.do(self.client, "list all files", platform=platform)

        mock_run.assert_called_once_with(["cmd", "/C", "ls -la"])

    def test_quit_does_not_execute(self, mock_run, mock_stdout):
        with patch("builtins.input", return_value="Q"):
            with self.assertRaises(SystemExit) as cm:
                do.do(self.client, "delete all files", platform=self.platform)

        self.assertEqual(cm.exception.code, 0)
        mock_run.assert_not_called()

    def test_invalid_choice_exits_without_reprompting(self, mock_run, mock_stdout):
        """An unknown answer ends the program with exit code 0. This is intentional."""
        with patch("builtins.input", return_value="x") as mock_input:
            with self.assertRaises(SystemExit) as cm:
                do.do(self.client, "list all files", platform=self.platform)

        self.assertEqual(cm.exception.code, 0)
        mock_input.assert_called_once()
        mock_run.assert_not_called()
        self.assertIn("Invalid option.", mock_stdout.getvalue())

    def test_eof_quits(self, mock_run, mock_stdout):
        """EOF at the prompt quits without running anything, unlike an empty line, which executes."""
        with patch("builtins.input", side_effect=EOFError):
            with self.assertRaises(SystemExit) as cm:
                do.do(self.client, "list all files", platform=self.platform)

        self.assertEqual(cm.exception.code, 0)
        mock_run.assert_not_called()

    @patch("aicmd.ai.assistants.do.explain")
    def test_explain_then_execute(self, mock_explain, mock_run, mock_stdout):
        mock_run.return_value.returncode = 0
        with patch("builtins.input", side_effect=["d", "e"]) as mock_input:
            do.do(self.client, "list all files", platform=self.platform)

        mock_explain.assert_called_once_with(self.client, "ls -la", self.platform)
        self.assertEqual(mock_input.call_count, 2)
        self.assertEqual(mock_stdout.getvalue().count("  ls -la"), 2)
        mock_run.assert_called_once_with(["sh", "-c", "ls -la"])

    def test_piped_input_reads_choice_from_terminal(self, mock_run, mock_stdout):
        mock_run.return_value.returncode = 0
        self.platform.read_terminal_line = MagicMock(return_value="")

        with patch("builtins.input") as mock_input:
            do.do(self.client, "count lines", stdin_content="a\nb\n", platform=self.platform)

        mock_input.assert_not_called()
        self.platform.read_terminal_line.assert_called_once()
        self.assertIn(do.CHOICE_PROMPT, mock_stdout.getvalue())
        mock_run.assert_called_once()

    def test_empty_command_fails(self, mock_run, mock_stdout):
        for reply in ("", "  \n"):
            with self.subTest(reply=reply):
                self.client.call_buffered.return_value = reply
                with patch("builtins.input") as mock_input:
                    with self.assertRaises(EmptyResultError):
                        do.do(self.client, "something impossible", platform=self.platform)
                mock_input.assert_not_called()
        mock_run.assert_not_called()

    @patch("sys.stderr", new_callable=StringIO)
    def test_non_zero_exit_is_a_warning(self, mock_stderr, mock_run, mock_stdout):
        mock_run.return_value.returncode = 2
        with patch("builtins.input", return_value="e"):
            do.do(self.client, "list all files", platform=self.platform)

        self.assertIn("exited with status 2", mock_stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
