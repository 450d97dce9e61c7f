import unittest

from oddshell.pipeline import (
    Pipeline,
    Stage,
    StageOrder,
    build_pipeline,
    resolve_redirection,
    split_stages,
)
from oddshell.tokenizer import tokenize


class TestTokenize(unittest.TestCase):

    def test_splits_on_whitespace_runs(self):
        self.assertEqual(tokenize("ls   -l\t/tmp"), ["ls", "-l", "/tmp"])

    def test_blank_lines_yield_nothing(self):
        self.assertEqual(tokenize(""), [])
        self.assertEqual(tokenize("   \t "), [])

    def test_pipe_must_stand_alone(self):
        self.assertEqual(tokenize("echo hi|cat"), ["echo", "hi|cat"])
        self.assertEqual(tokenize("echo hi | cat"), ["echo", "hi", "|", "cat"])


class TestSplitStages(unittest.TestCase):

    def test_single_command(self):
        self.assertEqual(split_stages(["echo", "hi"]), [("echo", "hi")])

    def test_pipe_is_discarded(self):
        self.assertEqual(
            split_stages(["echo", "hi", "|", "cat", "|", "wc", "-c"]),
            [("echo", "hi"), ("cat",), ("wc", "-c")],
        )

    def test_dangling_and_doubled_pipes_make_empty_stages(self):
        self.assertEqual(split_stages(["|", "cat"]), [(), ("cat",)])
        self.assertEqual(split_stages(["cat", "|"]), [("cat",), ()])
        self.assertEqual(split_stages(["a", "|", "|", "b"]), [("a",), (), ("b",)])


class TestResolveRedirection(unittest.TestCase):

    def test_marker_in_second_position(self):
        argv, target = resolve_redirection(["out.txt", "<", "echo", "hi", "there"])
        self.assertEqual(argv, ("echo", "hi", "there"))
        self.assertEqual(target, "out.txt")

    def test_marker_elsewhere_is_an_argument(self):
        argv, target = resolve_redirection(["echo", "hi", "<", "out.txt"])
        self.assertEqual(argv, ("echo", "hi", "<", "out.txt"))
        self.assertIsNone(target)

    def test_only_first_marker_counts(self):
        argv, target = resolve_redirection(["a", "<", "echo", "<", "b"])
        self.assertEqual(argv, ("echo", "<", "b"))
        self.assertEqual(target, "a")

    def test_short_stages(self):
        self.assertEqual(resolve_redirection(["ls"]), (("ls",), None))
        self.assertEqual(resolve_redirection([]), ((), None))
        self.assertEqual(resolve_redirection(["f", "<"]), ((), "f"))


class TestBuildPipeline(unittest.TestCase):

    def test_empty_tokens(self):
        self.assertIsNone(build_pipeline([]))

    def test_natural_order(self):
        p = build_pipeline(tokenize("echo hi | tr a-z A-Z | cat"))
        self.assertIsInstance(p, Pipeline)
        self.assertEqual([s.argv for s in p], [["echo", "hi"], ["tr", "a-z", "A-Z"], ["cat"]])
        self.assertIs(p.order, StageOrder.NATURAL)

    def test_reversed_order(self):
        p = build_pipeline(tokenize("cat | echo hi"), StageOrder.REVERSED)
        self.assertEqual([s.argv for s in p], [["echo", "hi"], ["cat"]])

    def test_redirection_resolved_per_stage(self):
        p = build_pipeline(tokenize("echo hi | out.txt < cat"))
        self.assertEqual(p[0], Stage(("echo", "hi")))
        self.assertEqual(p[1], Stage(("cat",), target="out.txt"))
        self.assertEqual(str(p[1]), "out.txt < cat")

    def test_empty_stages_are_kept_in_place(self):
        p = build_pipeline(tokenize("| echo hi |"))
        self.assertEqual(len(p), 3)
        self.assertEqual([s.empty for s in p], [True, False, True])


if __name__ == "__main__":
    unittest.main()
