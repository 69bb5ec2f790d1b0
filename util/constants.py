class InternalURIs:
    INDEX = "/"
    HEALTH = "/healthz"
    JOBS = "/jobs"
    JOB = JOBS + "/{job_id}"
    JOB_RESULT = JOB + "/result"
