from bucket.main import run

run()
