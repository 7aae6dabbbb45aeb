# pipeline/ — runnable scripts for the exercise quality report.
#
#   01_run_report → load, partition, filter, train, validate and score
