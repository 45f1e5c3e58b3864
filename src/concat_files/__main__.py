from concat_files.cli import main

raise SystemExit(main())
