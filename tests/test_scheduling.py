import threading
import unittest

import schedule

from cryptobriefs.scheduling import CronJob, SingleFlight, register_jobs, run_safely, run_startup


class TestRunSafely(unittest.TestCase):
    def test_exceptions_are_logged_not_raised(self):
        def boom():
            raise RuntimeError("feed exploded")

        with self.assertLogs("cryptobriefs.scheduling", level="ERROR") as logs:
            self.assertIsNone(run_safely("insert_news", boom)())
        self.assertTrue(any("insert_news failed: feed exploded" in line for line in logs.output))

    def test_return_value_passes_through(self):
        self.assertEqual(run_safely("x", lambda: 42)(), 42)


class TestSingleFlight(unittest.TestCase):
    def test_skips_while_busy(self):
        guard = SingleFlight("insert_news")
        started, release = threading.Event(), threading.Event()
        calls = []

        def slow():
            calls.append("slow")
            started.set()
            release.wait(5)
            return "done"

        worker = threading.Thread(target=guard.run, args=(slow,))
        worker.start()
        self.assertTrue(started.wait(5))
        self.assertTrue(guard.busy)

        with self.assertLogs("cryptobriefs.scheduling", level="WARNING"):
            self.assertIsNone(guard.run(lambda: calls.append("overlap")))

        release.set()
        worker.join(5)
        self.assertFalse(guard.busy)
        self.assertEqual(guard.run(lambda: "again"), "again")
        self.assertEqual(calls, ["slow"])


class TestRegisterJobs(unittest.TestCase):
    def test_hourly_triggers_at_offsets(self):
        scheduler = schedule.Scheduler()
        jobs = [CronJob("insert_news", ":00", lambda: None), CronJob("create_blog_post", ":15", lambda: None)]

        register_jobs(scheduler, jobs)

        self.assertEqual(len(scheduler.get_jobs()), 2)
        news, blog = jobs
        self.assertEqual(news.job.unit, "hours")
        self.assertEqual(news.job.interval, 1)
        self.assertEqual(news.job.at_time.minute, 0)
        self.assertEqual(blog.job.at_time.minute, 15)
        self.assertEqual(scheduler.get_jobs("create_blog_post"), [blog.job])
        self.assertIsNone(news.guard)

    def test_single_flight_attaches_guards(self):
        jobs = [CronJob("insert_news", ":00", lambda: None)]
        register_jobs(schedule.Scheduler(), jobs, single_flight=True)
        self.assertIsInstance(jobs[0].guard, SingleFlight)

    def test_startup_runs_every_job_once(self):
        ran = []
        lock = threading.Lock()

        def record(name):
            def job():
                with lock:
                    ran.append(name)
            return job

        jobs = [CronJob("insert_news", ":00", record("news")), CronJob("create_blog_post", ":15", record("blog"))]
        for thread in run_startup(jobs):
            thread.join(5)
        self.assertEqual(sorted(ran), ["blog", "news"])

    def test_failed_startup_job_does_not_propagate(self):
        def boom():
            raise ValueError("no feeds")

        with self.assertLogs("cryptobriefs.scheduling", level="ERROR"):
            (thread,) = run_startup([CronJob("insert_news", ":00", boom)])
            thread.join(5)
        self.assertFalse(thread.is_alive())


if __name__ == "__main__":
    unittest.main()
