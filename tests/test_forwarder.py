import io
import os
import unittest

from oddshell.forwarder import forward_output, reap


class TestForwardOutput(unittest.TestCase):

    def test_copies_bytes_verbatim(self):
        r, w = os.pipe()
        payload = b"cmpt \x00\xff binary\n" * 10
        os.write(w, payload)
        os.close(w)
        out = io.BytesIO()
        try:
            n = forward_output(r, out, chunk_size=7)
        finally:
            os.close(r)
        self.assertEqual(n, len(payload))
        self.assertEqual(out.getvalue(), payload)

    def test_empty_stream(self):
        r, w = os.pipe()
        os.close(w)
        out = io.BytesIO()
        try:
            self.assertEqual(forward_output(r, out), 0)
        finally:
            os.close(r)
        self.assertEqual(out.getvalue(), b"")


class TestReap(unittest.TestCase):

    def spawn(self, code):
        pid = os.fork()
        if pid == 0:
            os._exit(code)
        return pid

    def test_collects_every_status(self):
        pids = [self.spawn(0), self.spawn(3), self.spawn(7)]
        statuses = reap(pids)
        self.assertEqual(statuses, {pids[0]: 0, pids[1]: 3, pids[2]: 7})

    def test_already_reaped(self):
        pid = self.spawn(0)
        os.waitpid(pid, 0)
        with self.assertLogs("oddshell.forwarder", level="ERROR"):
            self.assertEqual(reap([pid]), {pid: None})


if __name__ == "__main__":
    unittest.main()
