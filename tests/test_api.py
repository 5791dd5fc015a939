import unittest
import time

try:
    from api import app
except ModuleNotFoundError:
    app = None

try:
    from fastapi.testclient import TestClient
except (ImportError, RuntimeError):
    TestClient = None


PLUS_PUZZLE = {
    "row_runs": [[3], [1, 1], [5], [1, 1], [3]],
    "col_runs": ["3", "111", "111", "111", "3"],
}


@unittest.skipIf(app is None or TestClient is None, "fastapi stack is not available in this environment")
class TestApiIntegration(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)

    def test_health_endpoint(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_solve_endpoint_returns_solution_and_grid_format(self) -> None:
        response = self.client.post("/solve", json=PLUS_PUZZLE)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "completed")
        self.assertTrue(body["solved"])
        self.assertEqual(body["solution"][2], [1, 1, 1, 1, 1])
        self.assertEqual(body["grid_rows"][0], ".###.")
        self.assertEqual(body["grid_text"].split("\n"), body["grid_rows"])
        self.assertIsNone(body["trace"])

    def test_solve_endpoint_respects_known_grid(self) -> None:
        response = self.client.post(
            "/solve",
            json={"row_runs": [[1], [1]], "col_runs": [[1], [1]], "known_grid": [[0, None], [None, None]]},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["solution"], [[0, 1], [1, 0]])

    def test_solve_endpoint_with_trace_includes_trace(self) -> None:
        response = self.client.post("/solve", json={"row_runs": [[1], [1]], "col_runs": [[1], [1]], "trace": True})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(len(body["trace"]) > 0)
        self.assertTrue(any("Trying black" in line for line in body["trace"]))

    def test_solve_endpoint_with_trace_steps_includes_walkthrough_frames(self) -> None:
        response = self.client.post(
            "/solve",
            json={**PLUS_PUZZLE, "trace_steps": True, "trace_max_steps": 2},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(len(body["trace_steps"]), 2)
        self.assertTrue(body["trace_truncated"])
        first_step = body["trace_steps"][0]
        self.assertEqual(first_step["event"], "pass")
        self.assertEqual(len(first_step["grid"]), 5)

    def test_solve_endpoint_returns_400_on_dimension_mismatch(self) -> None:
        response = self.client.post(
            "/solve",
            json={"row_runs": [[1], [1]], "col_runs": [[1], [1]], "known_grid": [[None]]},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("detail", response.json())

    def test_solve_endpoint_returns_400_on_unsolvable_puzzle(self) -> None:
        response = self.client.post("/solve", json={"row_runs": [[1]], "col_runs": [[]]})
        self.assertEqual(response.status_code, 400)

    def test_solve_endpoint_returns_400_on_bad_run_symbol(self) -> None:
        response = self.client.post("/solve", json={"row_runs": ["10"], "col_runs": [[1]]})
        self.assertEqual(response.status_code, 400)

    def test_propagate_endpoint_returns_pass_summaries(self) -> None:
        response = self.client.post("/propagate", json={**PLUS_PUZZLE, "include_passes": True})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["unknown_cells"], 0)
        self.assertEqual(len(body["pass_summaries"]), body["passes"])
        self.assertEqual(body["pass_summaries"][0]["pass_index"], 0)
        self.assertEqual(body["pass_summaries"][-1]["unresolved"], 0)

    def test_propagate_endpoint_stops_at_fixed_point(self) -> None:
        response = self.client.post("/propagate", json={"row_runs": [[1], [1]], "col_runs": [[1], [1]]})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "finished_valid")
        self.assertEqual(body["grid_rows"], ["??", "??"])
        self.assertIsNone(body["pass_summaries"])

    def test_solve_job_flow_completes_and_exposes_elapsed_time(self) -> None:
        start_response = self.client.post("/solve/jobs/start", json={"row_runs": [[1], [1]], "col_runs": [[1], [1]]})
        self.assertEqual(start_response.status_code, 202)
        job_id = start_response.json()["job_id"]

        status_data = self._poll_job(job_id)
        self.assertEqual(status_data["status"], "completed")
        self.assertTrue(status_data["elapsed_seconds"] >= 0)
        self.assertTrue(status_data["passes"] >= 1)
        self.assertEqual(status_data["branches_explored"], 1)
        self.assertEqual(status_data["solve_status"], "completed")
        self.assertTrue(status_data["solved"])

    def test_solve_job_reports_failure(self) -> None:
        start_response = self.client.post("/solve/jobs/start", json={"row_runs": [[1]], "col_runs": [[]]})
        job_id = start_response.json()["job_id"]

        status_data = self._poll_job(job_id)
        self.assertEqual(status_data["status"], "failed")
        self.assertIsNotNone(status_data["error"])

    def test_solve_job_can_be_canceled(self) -> None:
        size = 12
        start_response = self.client.post(
            "/solve/jobs/start",
            json={"row_runs": [[1]] * size, "col_runs": [[1]] * size, "max_seconds": None},
        )
        self.assertEqual(start_response.status_code, 202)
        job_id = start_response.json()["job_id"]

        cancel_response = self.client.post(f"/solve/jobs/{job_id}/cancel")
        self.assertEqual(cancel_response.status_code, 200)

        status_data = self._poll_job(job_id)
        self.assertIn(status_data["status"], {"canceled", "completed"})

    def test_cancel_after_completion_keeps_final_status(self) -> None:
        start_response = self.client.post("/solve/jobs/start", json=PLUS_PUZZLE)
        job_id = start_response.json()["job_id"]
        finished = self._poll_job(job_id)
        self.assertEqual(finished["status"], "completed")
        self.assertEqual(finished["grid_rows"][2], "#####")

        cancel_response = self.client.post(f"/solve/jobs/{job_id}/cancel")
        self.assertEqual(cancel_response.status_code, 200)
        body = cancel_response.json()
        self.assertEqual(body["status"], "completed")
        self.assertTrue(body["solved"])
        self.assertEqual(body["passes"], finished["passes"])

    def test_unknown_job_returns_404(self) -> None:
        self.assertEqual(self.client.get("/solve/jobs/missing").status_code, 404)
        self.assertEqual(self.client.post("/solve/jobs/missing/cancel").status_code, 404)

    def _poll_job(self, job_id: str, timeout_seconds: float = 10.0) -> dict:
        deadline = time.time() + timeout_seconds
        last_status = {}
        while time.time() < deadline:
            status_response = self.client.get(f"/solve/jobs/{job_id}")
            self.assertEqual(status_response.status_code, 200)
            last_status = status_response.json()
            if last_status["status"] in {"completed", "canceled", "failed"}:
                return last_status
            time.sleep(0.05)
        self.fail(f"Timed out waiting for job {job_id} to finish. Last status: {last_status}")


if __name__ == "__main__":
    unittest.main()
